import logging
import threading
from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Deque, Dict, List, Optional

from pydantic import ValidationError

from painel import schemas
from painel.persistence import AlunoTable, PersistenceFailure

logger = logging.getLogger("painel.registry")

CSV_HEADERS = ["Nome", "Matrícula", "Mensalidade", "Status Pagamento"]
CSV_FILENAME = "alunos.csv"
CSV_MEDIA_TYPE = "text/csv"

# oldest toasts are dropped once this many are pending
MAX_NOTIFICATIONS = 50


class ValidationFailure(Exception):
    """Form input rejected before reaching the table. ``errors`` maps field -> message."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


@dataclass
class Notification:
    title: str
    description: str
    variant: str = "default"


def validate_form(data) -> schemas.AlunoForm:
    if isinstance(data, schemas.AlunoForm):
        data = data.model_dump()
    try:
        return schemas.AlunoForm.model_validate(data)
    except ValidationError as e:
        errors = {}
        for err in e.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            errors.setdefault(field, err["msg"])
        raise ValidationFailure(errors) from e


def plain_decimal(value: float) -> str:
    """
    Number as a browser prints it: 850.0 -> '850', 850.5 -> '850.5',
    -0.0 -> '0', 1e-07 -> '1e-7', 1e21 -> '1e+21'.
    """
    value = float(value)
    if value == 0:
        return "0"
    d = Decimal(repr(value)).normalize()
    if 1e-6 <= abs(value) < 1e21:
        return format(d, "f")
    sign, digits, exponent = d.as_tuple()
    digits = "".join(str(n) for n in digits)
    exponent += len(digits) - 1
    mantissa = digits[0] + ("." + digits[1:] if len(digits) > 1 else "")
    return f"{'-' if sign else ''}{mantissa}e{'+' if exponent >= 0 else '-'}{abs(exponent)}"


class StudentRegistry:
    """
    Holds the students shown on the panel and routes every change through
    the table. Local state only changes after the table confirms a write.

    Request handlers share one registry, so every operation runs under
    ``lock``. Callers that read ``last_failure`` or the newest notification
    after an operation hold the lock across both.
    """

    def __init__(self, table: AlunoTable, max_notifications: int = MAX_NOTIFICATIONS):
        self.table = table
        self.lock = threading.RLock()
        self.alunos: List[schemas.AlunoOut] = []
        self.loading = True
        self.notifications: Deque[Notification] = deque(maxlen=max_notifications)
        self.last_failure: Optional[PersistenceFailure] = None

    def notify(self, title: str, description: str, variant: str = "default"):
        notification = Notification(title, description, variant)
        with self.lock:
            self.notifications.append(notification)
        if variant == "destructive":
            logger.warning("%s: %s", title, description)
        else:
            logger.info("%s: %s", title, description)
        return notification

    def drain_notifications(self) -> List[Notification]:
        with self.lock:
            pending = list(self.notifications)
            self.notifications.clear()
        return pending

    def list(self) -> bool:
        with self.lock:
            try:
                alunos = self.table.select(order_by="nome")
            except PersistenceFailure as e:
                self.last_failure = e
                logger.error("Error loading alunos: %s", e)
                self.notify("Erro ao carregar alunos", "Não foi possível carregar a lista de alunos", "destructive")
                return False
            finally:
                self.loading = False

            self.alunos = alunos
            self.last_failure = None
            if self.table.demonstracao:
                self.notify(
                    "Aviso",
                    "Usando dados de demonstração. Para funcionalidade completa, configure o banco de dados.",
                    "destructive",
                )
            return True

    def create(self, data) -> bool:
        form = validate_form(data)
        fields = form.model_dump()
        fields["status_pagamento"] = schemas.StatusPagamento.PENDENTE
        with self.lock:
            try:
                self.table.insert(fields)
            except PersistenceFailure as e:
                self.last_failure = e
                logger.error("Error creating aluno matricula=%s: %s", form.matricula, e)
                self.notify("Erro ao adicionar aluno", "Não foi possível cadastrar o aluno", "destructive")
                return False

            self.notify("Aluno adicionado", "Aluno cadastrado com sucesso")
            # reload so id and timestamps come from the table
            self.list()
            return True

    def update(self, aluno_id: str, data) -> bool:
        form = validate_form(data)
        with self.lock:
            try:
                self.table.update(aluno_id, form.model_dump(include={"nome", "matricula", "mensalidade"}))
            except PersistenceFailure as e:
                self.last_failure = e
                logger.error("Error updating aluno id=%s: %s", aluno_id, e)
                self.notify("Erro ao atualizar aluno", "Não foi possível atualizar os dados do aluno", "destructive")
                return False

            self.notify("Aluno atualizado", "Dados do aluno atualizados com sucesso")
            self.list()
            return True

    def toggle_status(self, aluno_id: str, current_status) -> bool:
        novo = schemas.StatusPagamento(current_status).alternado()
        with self.lock:
            try:
                self.table.update(aluno_id, {"status_pagamento": novo})
            except PersistenceFailure as e:
                self.last_failure = e
                logger.error("Error toggling status of aluno id=%s: %s", aluno_id, e)
                self.notify("Erro ao atualizar status", "Não foi possível alterar o status de pagamento", "destructive")
                return False

            self.last_failure = None
            for aluno in self.alunos:
                if aluno.id == aluno_id:
                    aluno.status_pagamento = novo
            self.notify("Status atualizado", f"Status alterado para {novo.value}")
            return True

    def find(self, aluno_id: str) -> Optional[schemas.AlunoOut]:
        with self.lock:
            for aluno in self.alunos:
                if aluno.id == aluno_id:
                    return aluno
            return None

    def export_csv(self) -> str:
        with self.lock:
            lines = [",".join(CSV_HEADERS)]
            for aluno in self.alunos:
                lines.append(",".join([
                    f'"{aluno.nome}"',
                    f'"{aluno.matricula}"',
                    plain_decimal(aluno.mensalidade),
                    f'"{aluno.status_pagamento.value}"',
                ]))
            self.notify("Exportação concluída", "Dados exportados para CSV com sucesso")
        return "\n".join(lines)
