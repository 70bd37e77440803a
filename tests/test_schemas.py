import pytest
from pydantic import ValidationError

from painel.schemas import AlunoForm, AlunoOut, StatusPagamento, format_mensalidade


def test_valid_form():
    form = AlunoForm(nome="Ana Costa", matricula="MAT004", mensalidade=850)
    assert form.mensalidade == 850.0


def test_zero_fee_is_accepted():
    assert AlunoForm(nome="Ana", matricula="MAT004", mensalidade=0).mensalidade == 0


@pytest.mark.parametrize("field,value,message", [
    ("nome", "", "Nome é obrigatório"),
    ("matricula", "", "Matrícula é obrigatória"),
    ("mensalidade", -0.01, "Mensalidade deve ser maior que 0"),
])
def test_field_errors(field, value, message):
    data = {"nome": "Ana", "matricula": "MAT004", "mensalidade": 10}
    data[field] = value
    with pytest.raises(ValidationError) as exc:
        AlunoForm(**data)
    errors = exc.value.errors()
    assert errors[0]["loc"] == (field,)
    assert errors[0]["msg"] == message


def test_missing_fields_default_to_empty_form():
    with pytest.raises(ValidationError) as exc:
        AlunoForm()
    assert {e["loc"][0] for e in exc.value.errors()} == {"nome", "matricula"}


def test_status_flip():
    assert StatusPagamento.PAGO.alternado() is StatusPagamento.PENDENTE
    assert StatusPagamento.PENDENTE.alternado() is StatusPagamento.PAGO
    assert StatusPagamento("Pago").alternado().alternado() is StatusPagamento.PAGO


def test_display_formatting():
    assert format_mensalidade(850) == "R$ 850.00"
    assert format_mensalidade(899.5) == "R$ 899.50"
    aluno = AlunoOut(id="1", nome="Ana", matricula="MAT004", mensalidade=850, status_pagamento="Pendente")
    assert aluno.model_dump()["mensalidade_formatada"] == "R$ 850.00"


@pytest.mark.parametrize("value", [float("nan"), "nan", float("inf"), "-inf"])
def test_non_finite_fee_is_rejected(value):
    with pytest.raises(ValidationError) as exc:
        AlunoForm(nome="Ana", matricula="MAT004", mensalidade=value)
    assert [e["loc"] for e in exc.value.errors()] == [("mensalidade",)]
