"""
Table access for the ``alunos`` table.

StudentRegistry only talks to an ``AlunoTable``: select with ordering, insert
and partial update. ``SqlAlchemyTable`` is the database-backed one,
``InMemoryTable`` holds demonstration data for local runs and tests.
"""
import copy
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from painel import models, schemas

logger = logging.getLogger("painel.persistence")


class PersistenceFailure(Exception):
    """Any error reported by the backing store."""


class RecordNotFound(PersistenceFailure):
    def __init__(self, aluno_id: str):
        super().__init__(f"Aluno {aluno_id} not found")
        self.aluno_id = aluno_id


def _plain(fields: dict) -> dict:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()}


class AlunoTable:
    # True when the rows are demonstration data rather than a real store
    demonstracao = False

    def select(self, order_by: str = "nome") -> List[schemas.AlunoOut]:
        raise NotImplementedError

    def insert(self, fields: dict) -> None:
        raise NotImplementedError

    def update(self, aluno_id: str, fields: dict) -> None:
        raise NotImplementedError


class SqlAlchemyTable(AlunoTable):
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def select(self, order_by: str = "nome") -> List[schemas.AlunoOut]:
        column = getattr(models.Aluno, order_by)
        db = self.session_factory()
        try:
            rows = db.query(models.Aluno).order_by(column.asc()).all()
            return [schemas.AlunoOut.model_validate(r) for r in rows]
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"select on alunos failed: {e}") from e
        finally:
            db.close()

    def insert(self, fields: dict) -> None:
        db = self.session_factory()
        try:
            aluno = models.Aluno(**_plain(fields))
            db.add(aluno)
            # flush assigns the id; read it before commit expires the instance
            db.flush()
            aluno_id, matricula = aluno.id, aluno.matricula
            db.commit()
            logger.info("Inserted aluno id=%s matricula=%s", aluno_id, matricula)
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"insert on alunos failed: {e}") from e
        finally:
            db.close()

    def update(self, aluno_id: str, fields: dict) -> None:
        db = self.session_factory()
        try:
            aluno = db.query(models.Aluno).filter(models.Aluno.id == aluno_id).first()
            if not aluno:
                raise RecordNotFound(aluno_id)
            for key, value in _plain(fields).items():
                setattr(aluno, key, value)
            db.commit()
            logger.info("Updated aluno id=%s fields=%s", aluno_id, sorted(fields))
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"update on alunos failed: {e}") from e
        finally:
            db.close()


DADOS_DEMONSTRACAO = [
    {"nome": "João Silva", "matricula": "MAT001", "mensalidade": 850.00, "status_pagamento": "Pago"},
    {"nome": "Maria Santos", "matricula": "MAT002", "mensalidade": 850.00, "status_pagamento": "Pendente"},
    {"nome": "Pedro Oliveira", "matricula": "MAT003", "mensalidade": 900.00, "status_pagamento": "Pago"},
    {"nome": "Ana Costa", "matricula": "MAT004", "mensalidade": 850.00, "status_pagamento": "Pendente"},
]


class InMemoryTable(AlunoTable):
    def __init__(self, registros: Optional[List[dict]] = None, demonstracao: bool = False):
        self.demonstracao = demonstracao
        self.rows: Dict[str, dict] = {}
        for registro in registros or []:
            self.insert(registro)

    @classmethod
    def com_dados_demonstracao(cls) -> "InMemoryTable":
        return cls(DADOS_DEMONSTRACAO, demonstracao=True)

    def select(self, order_by: str = "nome") -> List[schemas.AlunoOut]:
        rows = sorted(self.rows.values(), key=lambda row: row[order_by])
        return [schemas.AlunoOut.model_validate(copy.deepcopy(row)) for row in rows]

    def insert(self, fields: dict) -> None:
        now = datetime.now(timezone.utc)
        row = {"status_pagamento": "Pendente"}
        row.update(_plain(fields))
        row.update(id=uuid.uuid4().hex, created_at=now, updated_at=now)
        self.rows[row["id"]] = row

    def update(self, aluno_id: str, fields: dict) -> None:
        row = self.rows.get(aluno_id)
        if row is None:
            raise RecordNotFound(aluno_id)
        row.update(_plain(fields))
        row["updated_at"] = datetime.now(timezone.utc)
