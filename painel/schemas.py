from enum import Enum
from typing import Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator
from pydantic_core import PydanticCustomError


class StatusPagamento(str, Enum):
    PAGO = "Pago"
    PENDENTE = "Pendente"

    def alternado(self) -> "StatusPagamento":
        return StatusPagamento.PENDENTE if self is StatusPagamento.PAGO else StatusPagamento.PAGO


def format_mensalidade(value: float) -> str:
    """On-screen rendering of a fee, e.g. ``R$ 850.00``."""
    return f"R$ {value:.2f}"


class AlunoForm(BaseModel):
    """Fields accepted by the add/edit form. Defaults mirror an empty form."""

    model_config = ConfigDict(validate_default=True)

    nome: str = ""
    matricula: str = ""
    mensalidade: float = Field(0.0, allow_inf_nan=False)

    @field_validator("nome")
    @classmethod
    def nome_obrigatorio(cls, value: str) -> str:
        if len(value) == 0:
            raise PydanticCustomError("nome_obrigatorio", "Nome é obrigatório")
        return value

    @field_validator("matricula")
    @classmethod
    def matricula_obrigatoria(cls, value: str) -> str:
        if len(value) == 0:
            raise PydanticCustomError("matricula_obrigatoria", "Matrícula é obrigatória")
        return value

    @field_validator("mensalidade")
    @classmethod
    def mensalidade_nao_negativa(cls, value: float) -> float:
        if not value >= 0:
            raise PydanticCustomError("mensalidade_negativa", "Mensalidade deve ser maior que 0")
        return value


class AlunoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    nome: str
    matricula: str
    mensalidade: float
    status_pagamento: StatusPagamento
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def mensalidade_formatada(self) -> str:
        return format_mensalidade(self.mensalidade)


class ToggleStatusIn(BaseModel):
    status_atual: StatusPagamento


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    description: str
    variant: str = "default"
