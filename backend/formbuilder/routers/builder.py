from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from formbuilder.deps import get_builder_store
from formbuilder.schemas import FieldType, FormField, NameIn, ReorderIn, new_field
from formbuilder.store import (
    AddField,
    CommandError,
    CreateNewForm,
    DeleteField,
    FormBuilderStore,
    LoadForm,
    ReorderField,
    SaveCurrent,
    SetName,
    UpdateField,
)

router = APIRouter(prefix="/api/builder", tags=["builder"])


async def _apply(store: FormBuilderStore, command):
    try:
        state = await store.dispatch(command)
    except CommandError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return state.model_dump(mode="json", exclude_none=True)


def _require_field(store: FormBuilderStore, field_id: str) -> None:
    if store.state.currentForm.field_by_id(field_id) is None:
        raise HTTPException(status_code=404, detail="Field not found")


@router.get("")
async def get_state(store: FormBuilderStore = Depends(get_builder_store)):
    """The form being edited and the saved forms."""
    return store.state.model_dump(mode="json", exclude_none=True)


@router.post("/new")
async def create_new_form(store: FormBuilderStore = Depends(get_builder_store)):
    return await _apply(store, CreateNewForm())


@router.put("/name")
async def set_name(body: NameIn, store: FormBuilderStore = Depends(get_builder_store)):
    return await _apply(store, SetName(name=body.name))


@router.post("/fields")
async def add_field(field: FormField, store: FormBuilderStore = Depends(get_builder_store)):
    return await _apply(store, AddField(field=field))


@router.post("/fields/new/{field_type}")
async def add_default_field(field_type: FieldType, store: FormBuilderStore = Depends(get_builder_store)):
    """Append a field of the given type with the editor's starting values."""
    return await _apply(store, AddField(field=new_field(field_type)))


@router.patch("/fields/{field_id}")
async def update_field(
    field_id: str,
    changes: Dict[str, Any],
    store: FormBuilderStore = Depends(get_builder_store),
):
    _require_field(store, field_id)
    return await _apply(store, UpdateField(id=field_id, changes=changes))


@router.delete("/fields/{field_id}")
async def delete_field(field_id: str, store: FormBuilderStore = Depends(get_builder_store)):
    _require_field(store, field_id)
    return await _apply(store, DeleteField(id=field_id))


@router.post("/fields/reorder")
async def reorder_fields(body: ReorderIn, store: FormBuilderStore = Depends(get_builder_store)):
    return await _apply(store, ReorderField(fromIndex=body.fromIndex, toIndex=body.toIndex))


@router.post("/save")
async def save_current(store: FormBuilderStore = Depends(get_builder_store)):
    if not store.state.currentForm.name.strip():
        raise HTTPException(status_code=400, detail="Form name is required")
    return await _apply(store, SaveCurrent())


@router.post("/load/{form_id}")
async def load_form(form_id: str, store: FormBuilderStore = Depends(get_builder_store)):
    for form in store.state.savedForms:
        if form.id == form_id:
            return await _apply(store, LoadForm(form=form))
    raise HTTPException(status_code=404, detail="Form not found")
