import pytest
from sqlalchemy.orm import sessionmaker

from painel import database, models  # noqa: F401  (registers the alunos table)
from painel.persistence import InMemoryTable, PersistenceFailure, SqlAlchemyTable
from painel.registry import StudentRegistry


class FlakyTable(InMemoryTable):
    """In-memory table whose operations can be made to fail on demand."""

    def __init__(self, *args, **kwargs):
        self.failing = set()
        self.calls = []
        super().__init__(*args, **kwargs)

    def _check(self, op):
        self.calls.append(op)
        if op in self.failing:
            raise PersistenceFailure(f"{op} failed")

    def select(self, order_by="nome"):
        self._check("select")
        return super().select(order_by)

    def insert(self, fields):
        self._check("insert")
        super().insert(fields)

    def update(self, aluno_id, fields):
        self._check("update")
        super().update(aluno_id, fields)


@pytest.fixture
def two_alunos():
    return [
        {"nome": "João Silva", "matricula": "MAT001", "mensalidade": 850.00, "status_pagamento": "Pago"},
        {"nome": "Maria Santos", "matricula": "MAT002", "mensalidade": 850.00, "status_pagamento": "Pendente"},
    ]


@pytest.fixture
def table(two_alunos):
    t = FlakyTable(two_alunos)
    t.calls.clear()
    return t


@pytest.fixture
def registry(table):
    r = StudentRegistry(table)
    r.list()
    r.drain_notifications()
    table.calls.clear()
    return r


@pytest.fixture
def session_factory():
    engine = database.make_engine("sqlite://")
    database.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def sql_table(session_factory):
    return SqlAlchemyTable(session_factory)
