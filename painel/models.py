import uuid

from sqlalchemy import Column, String, Float, DateTime, func
from painel.database import Base

def _new_id():
    return uuid.uuid4().hex

class Aluno(Base):
    __tablename__ = "alunos"
    id = Column(String(32), primary_key=True, default=_new_id)
    nome = Column(String(255), nullable=False, index=True)
    matricula = Column(String(64), nullable=False, index=True)
    mensalidade = Column(Float, nullable=False, default=0.0)
    status_pagamento = Column(String(20), nullable=False, default="Pendente")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
