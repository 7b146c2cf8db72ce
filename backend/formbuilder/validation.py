from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from formbuilder.schemas import LENGTH_TYPES, FieldType, FormField, ValidationRules


REQUIRED_MESSAGE = "This field is required"
NUMBER_MESSAGE = "Must be a number"
DATE_MESSAGE = "Must be a valid date"
CHECKBOX_MESSAGE = "Must be true or false"
TEXT_MESSAGE = "Must be text"
EMAIL_MESSAGE = "Please enter a valid email address"
PASSWORD_MESSAGE = "Password must be at least 8 characters long and contain at least one number"

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PASSWORD_RE = re.compile(r"(?=.*\d).{8,}", re.ASCII)
# Numeric text as a JS Number() cast accepts it; Python-only spellings such as
# "inf", "nan" or "1_000" do not match.
DECIMAL_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)
RADIX_RE = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+", re.ASCII)

_NUMBER = TypeAdapter(float)
_DATE = TypeAdapter(date)
_DATETIME = TypeAdapter(datetime)
_BOOL = TypeAdapter(bool)

Checker = Callable[[Any], Optional[str]]


class _Mismatch(Exception):
    """Value cannot be coerced to the field's type."""


def min_length_message(n: int) -> str:
    return f"Minimum length is {n} characters"


def max_length_message(n: int) -> str:
    return f"Maximum length is {n} characters"


def is_valid_email(email: str) -> bool:
    return EMAIL_RE.fullmatch(email) is not None


def is_valid_password(password: str) -> bool:
    return len(password) >= 8 and re.search(r"\d", password, re.ASCII) is not None


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


# ---------- coercion per type ----------

def _as_string(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise _Mismatch()


def parse_number_text(text: str) -> Optional[float]:
    """Finite value of numeric text, or None when it is not a plain JS number."""
    s = text.strip()
    try:
        if RADIX_RE.fullmatch(s):
            number = float(int(s, 0))
        elif DECIMAL_RE.fullmatch(s):
            number = float(s)
        else:
            return None
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _as_number(value: Any) -> float:
    if isinstance(value, str):
        number = parse_number_text(value)
        if number is None:
            raise _Mismatch()
        return number
    try:
        number = _NUMBER.validate_python(value)
    except ValidationError:
        raise _Mismatch()
    if not math.isfinite(number):
        raise _Mismatch()
    return number


def _as_date(value: Any) -> Union[date, datetime]:
    for adapter in (_DATE, _DATETIME):
        try:
            return adapter.validate_python(value)
        except ValidationError:
            continue
    raise _Mismatch()


def _as_bool(value: Any) -> bool:
    if value is None or value == "":
        return False
    try:
        return _BOOL.validate_python(value)
    except ValidationError:
        raise _Mismatch()


# ---------- per-type check builders ----------

def _string_check(field: FormField) -> Checker:
    rules = field.validation
    bounded = field.type in LENGTH_TYPES

    def check(value: Any) -> Optional[str]:
        if rules.required and _is_missing(value):
            return REQUIRED_MESSAGE
        if value is None:
            return None
        try:
            text = _as_string(value)
        except _Mismatch:
            return TEXT_MESSAGE
        if bounded and rules.minLength and len(text) < rules.minLength:
            return min_length_message(rules.minLength)
        if bounded and rules.maxLength and len(text) > rules.maxLength:
            return max_length_message(rules.maxLength)
        if rules.email and text and not is_valid_email(text):
            return EMAIL_MESSAGE
        if rules.password and PASSWORD_RE.fullmatch(text) is None:
            return PASSWORD_MESSAGE
        return None

    return check


def _coerced_check(coerce: Callable[[Any], Any], type_message: str) -> Callable[[FormField], Checker]:
    def build(field: FormField) -> Checker:
        rules = field.validation

        def check(value: Any) -> Optional[str]:
            if _is_missing(value):
                return REQUIRED_MESSAGE if rules.required else None
            try:
                coerce(value)
            except _Mismatch:
                return type_message
            return None

        return check

    return build


def _checkbox_check(field: FormField) -> Checker:
    rules = field.validation

    def check(value: Any) -> Optional[str]:
        try:
            checked = _as_bool(value)
        except _Mismatch:
            return CHECKBOX_MESSAGE
        # an unchecked required box is a failure, not an empty value
        if rules.required and checked is not True:
            return REQUIRED_MESSAGE
        return None

    return check


_BUILDERS: Dict[FieldType, Callable[[FormField], Checker]] = {
    FieldType.text: _string_check,
    FieldType.textarea: _string_check,
    FieldType.select: _string_check,
    FieldType.radio: _string_check,
    FieldType.number: _coerced_check(_as_number, NUMBER_MESSAGE),
    FieldType.date: _coerced_check(_as_date, DATE_MESSAGE),
    FieldType.checkbox: _checkbox_check,
}

_unhandled = set(FieldType) - set(_BUILDERS)
if _unhandled:
    raise RuntimeError(f"no validator for field types: {sorted(t.value for t in _unhandled)}")


class Validator:
    """Compiled per-field checks for one field list."""

    def __init__(self, checks: Dict[str, Checker]):
        self._checks = checks

    @property
    def field_ids(self):
        return list(self._checks)

    def check(self, values: Mapping[str, Any]) -> Dict[str, Optional[str]]:
        """One entry per compiled field; None when the field passes."""
        return {field_id: check(values.get(field_id)) for field_id, check in self._checks.items()}

    def errors(self, values: Mapping[str, Any]) -> Dict[str, str]:
        return {k: v for k, v in self.check(values).items() if v is not None}

    def is_valid(self, values: Mapping[str, Any]) -> bool:
        return not self.errors(values)


def compile_validator(fields: Sequence[FormField]) -> Validator:
    return Validator({f.id: _BUILDERS[f.type](f) for f in fields})


def validate_field_value(value: Any, rules: Union[ValidationRules, Mapping[str, Any]]) -> Optional[str]:
    """
    Check a bare value against raw rules, regardless of field type.

    Length, email and password checks only run for non-empty strings.
    """
    if not isinstance(rules, ValidationRules):
        rules = ValidationRules.model_validate(rules or {})

    if rules.required and (not value or str(value).strip() == ""):
        return REQUIRED_MESSAGE

    if value and isinstance(value, str):
        if rules.minLength and len(value) < rules.minLength:
            return min_length_message(rules.minLength)
        if rules.maxLength and len(value) > rules.maxLength:
            return max_length_message(rules.maxLength)
        if rules.email and not is_valid_email(value):
            return EMAIL_MESSAGE
        if rules.password and not is_valid_password(value):
            return PASSWORD_MESSAGE

    return None
