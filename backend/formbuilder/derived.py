"""
Derived field evaluation.

A derived field names a formula and a list of parent fields. Named formulas
come from a small registry (age, concat, sum, average); any other formula is
treated as an arithmetic template over the parent ids, e.g. "price * qty".

Evaluation never raises: a formula that cannot be computed yields "".
"""
from __future__ import annotations

import ast
import logging
import math
import operator
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from formbuilder.schemas import FieldType, FormField
from formbuilder.validation import parse_number_text

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"[A-Za-z_]\w*", re.ASCII)
# Only digits, arithmetic operators, parentheses, dot and whitespace may
# reach the expression evaluator.
SAFE_EXPRESSION_RE = re.compile(r"[\d+\-*/()\s.]+", re.ASCII)

_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}
_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

Formula = Callable[[Mapping[str, Any], Sequence[FormField], date], Any]


class UnsafeExpression(ValueError):
    """Expression text uses something other than plain arithmetic."""


# ---------- value helpers ----------

def _to_number(x: Any) -> Optional[float]:
    """Numeric value of x following a JS Number() cast, or None if not numeric."""
    if isinstance(x, bool):
        return float(x)
    if isinstance(x, (int, float)):
        try:
            number = float(x)
        except OverflowError:
            return None
        return number if math.isfinite(number) else None
    if isinstance(x, str):
        return 0.0 if x.strip() == "" else parse_number_text(x)
    return None


def _tidy(number: float) -> Any:
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _to_text(x: Any) -> str:
    if isinstance(x, bool):
        return "true" if x else "false"
    if isinstance(x, float):
        return str(_tidy(x))
    return str(x)


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def _numeric_values(parent_values: Mapping[str, Any]):
    numbers = []
    for v in parent_values.values():
        n = _to_number(v)
        if n is not None:
            numbers.append(n)
    return numbers


# ---------- registered formulas ----------

def age_formula(parent_values: Mapping[str, Any], fields: Sequence[FormField], today: date) -> int:
    types = {f.id: f.type for f in fields}
    for field_id, value in parent_values.items():
        if types.get(field_id) != FieldType.date or not value:
            continue
        born = _parse_date(value)
        if born is None:
            return 0
        years = today.year - born.year
        if (today.month, today.day) < (born.month, born.day):
            years -= 1
        return max(years, 0)
    return 0


def concat_formula(parent_values: Mapping[str, Any], fields: Sequence[FormField], today: date) -> str:
    return " ".join(_to_text(v) for v in parent_values.values() if v is not None and v != "")


def sum_formula(parent_values: Mapping[str, Any], fields: Sequence[FormField], today: date) -> Any:
    return _tidy(math.fsum(_numeric_values(parent_values)))


def average_formula(parent_values: Mapping[str, Any], fields: Sequence[FormField], today: date) -> Any:
    numbers = _numeric_values(parent_values)
    if not numbers:
        return 0
    return _tidy(math.fsum(numbers) / len(numbers))


FORMULAS: Dict[str, Formula] = {
    "age": age_formula,
    "concat": concat_formula,
    "sum": sum_formula,
    "average": average_formula,
}


def register_formula(name: str, func: Formula) -> None:
    """Add a named formula; names are matched case-insensitively."""
    FORMULAS[name.lower()] = func


# ---------- constrained arithmetic ----------

def _eval_node(node: ast.AST) -> float:
    if isinstance(node, ast.Expression):
        return _eval_node(node.body)
    # floats throughout, as JS numbers: overflow surfaces as inf or OverflowError
    if isinstance(node, ast.Constant) and type(node.value) in (int, float):
        return float(node.value)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_eval_node(node.operand))
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_eval_node(node.left), _eval_node(node.right))
    raise UnsafeExpression(f"unsupported syntax: {type(node).__name__}")


def evaluate_expression(expression: str) -> Any:
    """Evaluate plain arithmetic text. Raises on anything else."""
    if SAFE_EXPRESSION_RE.fullmatch(expression) is None:
        raise UnsafeExpression(f"disallowed characters in {expression!r}")
    tree = ast.parse(expression.strip(), mode="eval")
    result = _eval_node(tree)
    if isinstance(result, complex) or not math.isfinite(result):
        raise ArithmeticError(f"non-finite result for {expression!r}")
    return _tidy(result)


def substitute_tokens(formula: str, parent_values: Mapping[str, Any]) -> str:
    def replace(match: re.Match) -> str:
        value = parent_values.get(match.group(0))
        return "0" if value is None else _to_text(value)

    return TOKEN_RE.sub(replace, formula)


def _template_formula(formula: str, parent_values: Mapping[str, Any]) -> Any:
    expression = substitute_tokens(formula, parent_values)
    if SAFE_EXPRESSION_RE.fullmatch(expression) is None:
        return ""
    return evaluate_expression(expression)


def compute_derived_value(
    formula: str,
    parent_values: Mapping[str, Any],
    fields: Sequence[FormField],
    today: Optional[date] = None,
) -> Any:
    try:
        func = FORMULAS.get(formula.lower())
        if func is not None:
            return func(parent_values, fields, today or date.today())
        return _template_formula(formula, parent_values)
    except Exception as e:
        logger.warning("Error computing derived value for formula %r: %s", formula, e)
        return ""
