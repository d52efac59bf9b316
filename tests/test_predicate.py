"""
Unit tests for predicate rendering.
"""

import pytest

from lora_auth.predicate import (
    NEVER,
    Clause,
    Compare,
    Column,
    Literal,
    Predicate,
    any_of,
    eq,
    is_true,
    not_null,
    param_eq,
    param_gt,
    params_of,
    render,
    same,
)


def test_or_across_and_within():
    predicate = Predicate((
        Clause((is_true("u.is_admin"),)),
        Clause((param_gt("organization_id", 0), eq("o.id", "organization_id"), is_true("ou.is_admin"))),
    ))
    where, params = render(predicate)
    assert where == (
        "((u.is_admin = true)) or "
        "((:organization_id > 0) and (o.id = :organization_id) and (ou.is_admin = true))"
    )
    assert params == ("organization_id",)


def test_params_in_order_of_first_use():
    predicate = Predicate((
        Clause((eq("a.id", "application_id"), param_eq("organization_id", 0))),
        Clause((eq("o.id", "organization_id"), param_eq("application_id", 0))),
    ))
    assert params_of(predicate) == ("application_id", "organization_id")


def test_any_of_and_null_checks():
    clause = Clause((
        any_of(eq("u.email", "subject_username"), eq("u.id", "subject_user_id")),
        not_null("ak.organization_id"),
        same("dp.organization_id", "ak.organization_id"),
    ))
    where, params = render(Predicate((clause,)))
    assert where == (
        "(((u.email = :subject_username) or (u.id = :subject_user_id)) and "
        "(ak.organization_id is not null) and "
        "(dp.organization_id = ak.organization_id))"
    )
    assert params == ("subject_username", "subject_user_id")


def test_empty_clause_is_true():
    assert render(Predicate((Clause(),))) == ("(true)", ())


def test_never_predicate():
    assert NEVER.never
    assert render(NEVER) == ("false", ())


def test_literal_is_rendered_inline():
    where, params = render(Predicate((Clause((Compare(Literal(1), "=", Column("x.y")),)),)))
    assert where == "((1 = x.y))"
    assert params == ()


def test_unknown_operator_rejected():
    with pytest.raises(ValueError):
        Compare(Column("a"), "like", Column("b"))
