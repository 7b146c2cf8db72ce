from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class FieldType(str, Enum):
    text = "text"
    number = "number"
    textarea = "textarea"
    select = "select"
    radio = "radio"
    checkbox = "checkbox"
    date = "date"


# Types whose value is a free string and may carry length limits
LENGTH_TYPES = frozenset({FieldType.text, FieldType.textarea})
OPTION_TYPES = frozenset({FieldType.select, FieldType.radio})


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ValidationRules(BaseModel):
    # None means "rule not enforced"
    required: Optional[bool] = None
    minLength: Optional[int] = Field(default=None, ge=0)
    maxLength: Optional[int] = Field(default=None, ge=0)
    email: Optional[bool] = None
    password: Optional[bool] = None


class DerivedConfig(BaseModel):
    parentFields: List[str] = Field(default_factory=list)
    formula: str = ""


class FormField(BaseModel):
    id: str
    type: FieldType
    label: str = ""
    required: bool = False
    defaultValue: Optional[Any] = None
    options: Optional[List[str]] = None
    validation: ValidationRules = Field(default_factory=ValidationRules)
    derived: Optional[DerivedConfig] = None

    @model_validator(mode="after")
    def _check_options(self) -> "FormField":
        if self.type in OPTION_TYPES and not self.options:
            raise ValueError(f"{self.type.value} field '{self.id}' needs at least one option")
        return self

    @property
    def is_derived(self) -> bool:
        return self.derived is not None


def new_field(field_type: FieldType, field_id: Optional[str] = None) -> FormField:
    """Build a field with the defaults the form editor starts from."""
    field_type = FieldType(field_type)
    options = ["Option 1", "Option 2"] if field_type in OPTION_TYPES else None
    return FormField(
        id=field_id or new_id(),
        type=field_type,
        label=f"New {field_type.value.capitalize()} Field",
        required=False,
        options=options,
        validation=ValidationRules(),
    )


def _ensure_unique_ids(fields: List[FormField]) -> None:
    seen = set()
    for f in fields:
        if f.id in seen:
            raise ValueError(f"duplicate field id '{f.id}'")
        seen.add(f.id)


class FormSchema(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str = ""
    fields: List[FormField] = Field(default_factory=list)
    createdAt: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "FormSchema":
        _ensure_unique_ids(self.fields)
        return self

    @classmethod
    def new(cls, name: str = "") -> "FormSchema":
        return cls(id=new_id(), name=name, fields=[], createdAt=utcnow())

    def field_by_id(self, field_id: str) -> Optional[FormField]:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    def to_record(self) -> Dict[str, Any]:
        """JSON-ready dict in the persisted layout (absent optionals omitted)."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------- request / response bodies ----------

class FormSchemaIn(BaseModel):
    name: str
    fields: List[FormField] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "FormSchemaIn":
        _ensure_unique_ids(self.fields)
        return self


class NameIn(BaseModel):
    name: str


class ReorderIn(BaseModel):
    fromIndex: int
    toIndex: int


class PreviewIn(BaseModel):
    fields: List[FormField] = Field(default_factory=list)
    values: Dict[str, Any] = Field(default_factory=dict)
    changes: Dict[str, Any] = Field(default_factory=dict)


class SavedPreviewIn(BaseModel):
    values: Dict[str, Any] = Field(default_factory=dict)
    changes: Dict[str, Any] = Field(default_factory=dict)


class DiagnosticOut(BaseModel):
    fieldId: str
    kind: str
    detail: str


class PreviewOut(BaseModel):
    values: Dict[str, Any]
    errors: Dict[str, Optional[str]]
    diagnostics: List[DiagnosticOut] = Field(default_factory=list)


class EvaluateIn(BaseModel):
    formula: str
    parentValues: Dict[str, Any] = Field(default_factory=dict)
    fields: List[FormField] = Field(default_factory=list)


class ValidateValueIn(BaseModel):
    value: Any = None
    rules: ValidationRules = Field(default_factory=ValidationRules)
