"""
Access predicates as a small algebraic type rendered to SQL.

A Predicate is a disjunction of Clauses; a Clause is a conjunction of
atoms. Atoms compare columns of the identity-join view with named
parameters or integer literals. Rendering yields the WHERE expression
and the parameter names it binds, in order of first use.
"""

from dataclasses import dataclass
from typing import List, Tuple, Union


@dataclass(frozen=True)
class Column:
    name: str                # qualified, e.g. "ou.is_admin"


@dataclass(frozen=True)
class Param:
    name: str


@dataclass(frozen=True)
class Literal:
    value: int


Operand = Union[Column, Param, Literal]
OPERATORS = ("=", "<>", ">", "<")


@dataclass(frozen=True)
class Compare:
    left: Operand
    op: str
    right: Operand

    def __post_init__(self):
        if self.op not in OPERATORS:
            raise ValueError(f"unsupported operator: {self.op}")


@dataclass(frozen=True)
class IsTrue:
    column: Column


@dataclass(frozen=True)
class IsNotNull:
    column: Column


@dataclass(frozen=True)
class AnyOf:
    atoms: Tuple["Atom", ...]


Atom = Union[Compare, IsTrue, IsNotNull, AnyOf]


@dataclass(frozen=True)
class Clause:
    atoms: Tuple[Atom, ...] = ()


@dataclass(frozen=True)
class Predicate:
    """OR over clauses. A predicate with no clauses never admits."""
    clauses: Tuple[Clause, ...] = ()

    @property
    def never(self) -> bool:
        return not self.clauses


NEVER = Predicate()


# ── Builders ─────────────────────────────────────────────────────────

def is_true(column: str) -> IsTrue:
    return IsTrue(Column(column))


def not_null(column: str) -> IsNotNull:
    return IsNotNull(Column(column))


def eq(column: str, param: str) -> Compare:
    """column = :param"""
    return Compare(Column(column), "=", Param(param))


def same(left: str, right: str) -> Compare:
    """column = column"""
    return Compare(Column(left), "=", Column(right))


def param_eq(param: str, value: int) -> Compare:
    return Compare(Param(param), "=", Literal(value))


def param_gt(param: str, value: int) -> Compare:
    return Compare(Param(param), ">", Literal(value))


def any_of(*atoms: Atom) -> AnyOf:
    return AnyOf(tuple(atoms))


# ── Rendering ────────────────────────────────────────────────────────

def _operand(operand: Operand, params: List[str]) -> str:
    if isinstance(operand, Column):
        return operand.name
    if isinstance(operand, Param):
        if operand.name not in params:
            params.append(operand.name)
        return f":{operand.name}"
    if isinstance(operand, Literal):
        return str(int(operand.value))
    raise TypeError(f"unknown operand: {operand!r}")


def _atom(atom: Atom, params: List[str]) -> str:
    if isinstance(atom, Compare):
        return f"{_operand(atom.left, params)} {atom.op} {_operand(atom.right, params)}"
    if isinstance(atom, IsTrue):
        return f"{atom.column.name} = true"
    if isinstance(atom, IsNotNull):
        return f"{atom.column.name} is not null"
    if isinstance(atom, AnyOf):
        return " or ".join(f"({_atom(a, params)})" for a in atom.atoms)
    raise TypeError(f"unknown atom: {atom!r}")


def render_clause(clause: Clause, params: List[str]) -> str:
    if not clause.atoms:
        return "(true)"
    return "(" + " and ".join(f"({_atom(a, params)})" for a in clause.atoms) + ")"


def render(predicate: Predicate) -> Tuple[str, Tuple[str, ...]]:
    """Return (where_sql, param_names) for a predicate."""
    if predicate.never:
        return "false", ()
    params: List[str] = []
    where = " or ".join(render_clause(c, params) for c in predicate.clauses)
    return where, tuple(params)


def params_of(predicate: Predicate) -> Tuple[str, ...]:
    return render(predicate)[1]
