"""
Form authoring state.

The builder state (the form being edited plus the list of saved forms) is
changed only by applying commands through `reduce`, which returns a new
state and leaves the old one untouched. `FormBuilderStore` owns one state
value, applies commands to it and writes the saved forms through to storage.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from formbuilder.schemas import FormField, FormSchema, new_id, utcnow

logger = logging.getLogger(__name__)


class FormBuilderError(Exception):
    pass


class CommandError(FormBuilderError):
    """A command cannot be applied to the current state."""


class FormBuilderState(BaseModel):
    currentForm: FormSchema = Field(default_factory=FormSchema.new)
    savedForms: List[FormSchema] = Field(default_factory=list)
    isLoading: bool = False


# ---------- commands ----------

class AddField(BaseModel):
    kind: Literal["add_field"] = "add_field"
    field: FormField


class UpdateField(BaseModel):
    kind: Literal["update_field"] = "update_field"
    id: str
    changes: Dict[str, Any]


class DeleteField(BaseModel):
    kind: Literal["delete_field"] = "delete_field"
    id: str


class ReorderField(BaseModel):
    kind: Literal["reorder_field"] = "reorder_field"
    fromIndex: int
    toIndex: int


class SetName(BaseModel):
    kind: Literal["set_name"] = "set_name"
    name: str


class SaveCurrent(BaseModel):
    kind: Literal["save_current"] = "save_current"


class SaveForm(BaseModel):
    kind: Literal["save_form"] = "save_form"
    form: FormSchema


class LoadForm(BaseModel):
    kind: Literal["load_form"] = "load_form"
    form: FormSchema


class DeleteForm(BaseModel):
    kind: Literal["delete_form"] = "delete_form"
    formId: str


class CreateNewForm(BaseModel):
    kind: Literal["create_new_form"] = "create_new_form"


class SetLoading(BaseModel):
    kind: Literal["set_loading"] = "set_loading"
    loading: bool


Command = Union[
    AddField, UpdateField, DeleteField, ReorderField, SetName,
    SaveCurrent, SaveForm, LoadForm, DeleteForm, CreateNewForm, SetLoading,
]

# commands after which savedForms must be written back
PERSISTING_COMMANDS = (SaveCurrent, SaveForm, DeleteForm)


def _with_fields(form: FormSchema, fields: List[FormField]) -> FormSchema:
    try:
        return FormSchema.model_validate({**form.model_dump(), "fields": [f.model_dump() for f in fields]})
    except ValidationError as e:
        raise CommandError(str(e)) from e


def _snapshot(form: FormSchema) -> FormSchema:
    """Saved copy of a form under a fresh id and timestamp."""
    return form.model_copy(deep=True, update={"id": new_id(), "createdAt": utcnow()})


def _reduce_form(form: FormSchema, command) -> FormSchema:
    fields = list(form.fields)

    if isinstance(command, AddField):
        if form.field_by_id(command.field.id) is not None:
            raise CommandError(f"field '{command.field.id}' already exists")
        return _with_fields(form, fields + [command.field])

    if isinstance(command, UpdateField):
        for i, f in enumerate(fields):
            if f.id == command.id:
                try:
                    fields[i] = FormField.model_validate({**f.model_dump(), **command.changes})
                except ValidationError as e:
                    raise CommandError(str(e)) from e
                return _with_fields(form, fields)
        return form

    if isinstance(command, DeleteField):
        return _with_fields(form, [f for f in fields if f.id != command.id])

    if isinstance(command, ReorderField):
        n = len(fields)
        if not (0 <= command.fromIndex < n and 0 <= command.toIndex < n):
            raise CommandError(f"cannot move field {command.fromIndex} -> {command.toIndex} in a form of {n} fields")
        moved = fields.pop(command.fromIndex)
        fields.insert(command.toIndex, moved)
        return _with_fields(form, fields)

    if isinstance(command, SetName):
        return form.model_copy(update={"name": command.name})

    raise CommandError(f"unsupported form command: {type(command).__name__}")


def reduce(state: FormBuilderState, command: Command) -> FormBuilderState:
    """Return the state that results from applying command to state."""
    if isinstance(command, (AddField, UpdateField, DeleteField, ReorderField, SetName)):
        return state.model_copy(update={"currentForm": _reduce_form(state.currentForm, command)})

    if isinstance(command, SaveCurrent):
        if not state.currentForm.name.strip():
            return state
        return state.model_copy(update={
            "savedForms": state.savedForms + [_snapshot(state.currentForm)],
            "currentForm": FormSchema.new(),
        })

    if isinstance(command, SaveForm):
        if not command.form.name.strip():
            return state
        return state.model_copy(update={"savedForms": state.savedForms + [_snapshot(command.form)]})

    if isinstance(command, LoadForm):
        return state.model_copy(update={"currentForm": command.form.model_copy(deep=True)})

    if isinstance(command, DeleteForm):
        return state.model_copy(update={"savedForms": [f for f in state.savedForms if f.id != command.formId]})

    if isinstance(command, CreateNewForm):
        return state.model_copy(update={"currentForm": FormSchema.new()})

    if isinstance(command, SetLoading):
        return state.model_copy(update={"isLoading": command.loading})

    raise CommandError(f"unknown command: {type(command).__name__}")


class FormBuilderStore:
    def __init__(self, repository, state: FormBuilderState = None):
        self.repository = repository
        self.state = state or FormBuilderState()
        # one command at a time, including its write to storage
        self._lock = asyncio.Lock()

    @classmethod
    async def create(cls, repository) -> "FormBuilderStore":
        saved = await repository.load()
        return cls(repository, FormBuilderState(savedForms=saved))

    async def dispatch(self, command: Command) -> FormBuilderState:
        async with self._lock:
            previous = self.state
            self.state = reduce(previous, command)
            if isinstance(command, PERSISTING_COMMANDS) and self.state.savedForms != previous.savedForms:
                await self.repository.save(self.state.savedForms)
            logger.debug("Applied %s", command.kind)
            return self.state
