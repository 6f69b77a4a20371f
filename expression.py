"""Arithmetic expression trees.

An expression is a `Number`, a `Variable` or an `Operator` joining two
sub-expressions with one of `+ - * / ^`. Nodes are frozen dataclasses, so
trees are immutable values that compare structurally.

>>> e = Operator(Number(4), "*", Variable("x"))
>>> str(e)
'(4 * x)'
>>> evaluate(e, {"x": 2.5})
10.0
"""
from dataclasses import dataclass
from enum import Enum
from functools import reduce
import logging
import math
import operator
import re
from typing import Callable, Mapping, NamedTuple, Optional, Sequence, Union

import numpy as np

logger = logging.getLogger(__name__)


class ExpressionError(Exception):
    """Base class for everything raised by the parser and the tree operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(ExpressionError):
    def __init__(self, message: str, expression: Optional[str] = None):
        super().__init__(message)
        self.expression = expression


class EvaluationError(ExpressionError):
    pass


class UnboundVariable(EvaluationError):
    def __init__(self, name: str):
        super().__init__(f"Variable {name!r} is not assigned a value")
        self.name = name


class UnknownOperator(EvaluationError):
    def __init__(self, op: str):
        super().__init__(f"Operator {op!r} is not a valid operator")
        self.op = op


def ieee(ufunc):
    """Lift the numpy `ufunc` to python floats, with IEEE 754 results instead of traps.

    Python raises on `1.0 / 0.0` and `0.0 ** -1.0`, and returns a complex
    number for `(-8.0) ** (1/3)`; float64 arithmetic gives `inf` and `nan`.

    >>> ieee(np.true_divide)(-1.0, 0.0)
    -inf
    >>> ieee(np.power)(-8.0, 1 / 3)
    nan
    """

    def f(a, b):
        with np.errstate(all="ignore"):
            return float(ufunc(np.float64(a), np.float64(b)))

    f.__name__ = ufunc.__name__
    return f


class Op(NamedTuple):
    op: str
    prec: int
    fun: Callable

    def __call__(self, *args):
        return self.fun(*args)

    def __repr__(self):
        return f"op({self.op!r})"

    def left_first(self, other):
        """Whether `self`, pending on the stack, binds before an incoming `other`.

        Only a strictly lower precedence lets `other` go first, so every
        operator, `^` included, associates to the left.
        """
        return not self.prec < other.prec

    def apply(self, stack):
        left, right = stack[-2:]
        stack[-2:] = [Operator(left, self.op, right)]


OP_GROUPS = """
add+ sub-
truediv/ mul*
pow^
""".strip()
IEEE_FUNS = {"truediv": ieee(np.true_divide), "pow": ieee(np.power)}
OPS = {
    o: Op(o, prec, IEEE_FUNS.get(fun) or getattr(operator, fun))
    for prec, op_groups in enumerate(OP_GROUPS.split("\n"), 1)
    for [(fun, o)] in map(re.compile(r"^(\w+)(\W)$").findall, op_groups.split())
}


class Kind(Enum):
    NUMBER = "Number"
    VARIABLE = "Variable"
    OPERATOR = "Operator"


@dataclass(frozen=True)
class ExpressionBase:
    def __str__(self):
        return render(self)


@dataclass(frozen=True)
class Number(ExpressionBase):
    value: float

    @property
    def kind(self):
        return Kind.NUMBER


@dataclass(frozen=True)
class Variable(ExpressionBase):
    name: str

    @property
    def kind(self):
        return Kind.VARIABLE


@dataclass(frozen=True)
class Operator(ExpressionBase):
    # `op` is not checked here; an unknown symbol surfaces in `evaluate`.
    left: "Expression"
    op: str
    right: "Expression"

    @property
    def kind(self):
        return Kind.OPERATOR


Expression = Union[Number, Variable, Operator]


def make_number(value: float) -> Number:
    return Number(float(value))


def make_variable(name: str) -> Variable:
    return Variable(name)


def make_operator(left: Expression, op: str, right: Expression) -> Operator:
    return Operator(left, op, right)


def kind(expr: Expression) -> Kind:
    return expr.kind


def _not_an_expression(expr):
    return TypeError(f"Not an expression: {expr!r}")


def canonicalize_num(num):
    """Render `num` the way it would be written: `4.0` as `4`, `0.2` as `0.2`.

    Negative zero keeps its sign.

    >>> [canonicalize_num(n) for n in (4.0, 0.2, 1e-05, 1e16, float("inf"), -0.0)]
    ['4', '0.2', '1e-05', '1e+16', 'inf', '-0.0']
    """
    if (
        math.isfinite(num)
        and abs(num) < 2**53
        and (integer := int(num)) == num
        and (num != 0 or math.copysign(1, num) > 0)
    ):
        return repr(integer)
    return repr(float(num))


def clone(expr: Expression) -> Expression:
    """Return a deep copy of `expr`.

    Operators are the recursive case, numbers and variables the base cases.
    """
    if expr.kind is Kind.NUMBER:
        return Number(expr.value)
    if expr.kind is Kind.VARIABLE:
        return Variable(expr.name)
    if expr.kind is Kind.OPERATOR:
        return Operator(clone(expr.left), expr.op, clone(expr.right))
    raise _not_an_expression(expr)


def render(expr: Expression) -> str:
    """Fully parenthesized infix form of `expr`.

    >>> render(Operator(Operator(Number(1), "+", Number(2.5)), "*", Variable("x")))
    '((1 + 2.5) * x)'
    """
    if expr.kind is Kind.NUMBER:
        return canonicalize_num(expr.value)
    if expr.kind is Kind.VARIABLE:
        return expr.name
    if expr.kind is Kind.OPERATOR:
        return f"({render(expr.left)} {expr.op} {render(expr.right)})"
    raise _not_an_expression(expr)


def render_postfix(expr: Expression) -> str:
    """Postfix (reverse polish) form of `expr`.

    >>> render_postfix(Operator(Operator(Number(1), "+", Number(2.5)), "*", Variable("x")))
    '1 2.5 + x *'
    """
    if expr.kind is Kind.NUMBER:
        return canonicalize_num(expr.value)
    if expr.kind is Kind.VARIABLE:
        return expr.name
    if expr.kind is Kind.OPERATOR:
        return f"{render_postfix(expr.left)} {render_postfix(expr.right)} {expr.op}"
    raise _not_an_expression(expr)


def to_nice_string(expr: Expression) -> str:
    # Minimal parenthesization is not supported; use the full form.
    return render(expr)


def evaluate(expr: Expression, bindings: Optional[Mapping[str, float]] = None) -> float:
    """Compute the value of `expr`, looking variables up in `bindings`.

    Raises `UnboundVariable` for a variable missing from `bindings` and
    `UnknownOperator` for an operator symbol outside `+ - * / ^`. Division
    by zero is not an error:

    >>> evaluate(Operator(Variable("a"), "/", Number(0)), {"a": -1.0})
    -inf
    """
    env = {} if bindings is None else bindings

    def eval_expr(expr):
        if expr.kind is Kind.NUMBER:
            return float(expr.value)
        if expr.kind is Kind.VARIABLE:
            try:
                return float(env[expr.name])
            except KeyError:
                logger.debug("unbound variable %r, bound: %s", expr.name, sorted(env))
                raise UnboundVariable(expr.name) from None
        if expr.kind is Kind.OPERATOR:
            if (op := OPS.get(expr.op)) is None:
                logger.debug("unknown operator %r in %r", expr.op, expr)
                raise UnknownOperator(expr.op)
            return op(eval_expr(expr.left), eval_expr(expr.right))
        raise _not_an_expression(expr)

    return eval_expr(expr)


def reciprocal(expr: Expression) -> Expression:
    """Return an expression for `1 / expr`.

    >>> reciprocal(Number(4))
    Number(value=0.25)
    >>> str(reciprocal(Operator(Variable("x"), "/", Number(10))))
    '(10 / x)'
    >>> str(reciprocal(Variable("x")))
    '(1 / x)'
    """
    if expr.kind is Kind.NUMBER:
        return Number(OPS["/"](1.0, expr.value))
    if expr.kind is Kind.OPERATOR and expr.op == "/":
        return Operator(clone(expr.right), "/", clone(expr.left))
    return Operator(Number(1.0), "/", clone(expr))


def collect_variables(expr: Expression) -> frozenset:
    """Return the names of all variables in `expr`.

    >>> sorted(collect_variables(Operator(Variable("b"), "*", Operator(Variable("a"), "-", Variable("b")))))
    ['a', 'b']
    """
    if expr.kind is Kind.NUMBER:
        return frozenset()
    if expr.kind is Kind.VARIABLE:
        return frozenset([expr.name])
    if expr.kind is Kind.OPERATOR:
        return collect_variables(expr.left) | collect_variables(expr.right)
    raise _not_an_expression(expr)


def geometric_mean(numbers: Sequence[float]) -> Expression:
    """Build `(numbers[0] * numbers[1] * ... * numbers[n-1]) ^ (1 / n)`.

    The product associates to the left. No arithmetic is done beyond the
    exponent `1 / n`.

    >>> str(geometric_mean([4, 9, 3]))
    '(((4 * 9) * 3) ^ 0.3333333333333333)'
    >>> geometric_mean([])
    Number(value=0.0)
    """
    if len(numbers) == 0:
        return Number(0.0)
    first, *rest = map(float, numbers)
    product = reduce(lambda acc, n: Operator(acc, "*", Number(n)), rest, Number(first))
    return Operator(product, "^", reciprocal(Number(len(numbers))))
