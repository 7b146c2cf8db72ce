from fastapi import APIRouter, Depends, HTTPException

from formbuilder.deps import get_builder_store
from formbuilder.runtime import initial_values, process_change
from formbuilder.schemas import FormSchema, FormSchemaIn, PreviewOut, SavedPreviewIn
from formbuilder.store import DeleteForm, FormBuilderStore, SaveForm

router = APIRouter(prefix="/api/forms", tags=["forms"])


def _find_saved(store: FormBuilderStore, form_id: str) -> FormSchema:
    for form in store.state.savedForms:
        if form.id == form_id:
            return form
    raise HTTPException(status_code=404, detail="Form not found")


@router.get("")
async def list_forms(store: FormBuilderStore = Depends(get_builder_store)):
    """Get a list of all saved forms."""
    return [form.to_record() for form in store.state.savedForms]


@router.post("")
async def save_form(form: FormSchemaIn, store: FormBuilderStore = Depends(get_builder_store)):
    if not form.name.strip():
        raise HTTPException(status_code=400, detail="Form name is required")

    state = await store.dispatch(SaveForm(form=FormSchema(name=form.name, fields=form.fields)))
    saved = state.savedForms[-1]
    return {"status": "ok", "formId": saved.id, "createdAt": saved.createdAt}


@router.get("/{form_id}")
async def get_form(form_id: str, store: FormBuilderStore = Depends(get_builder_store)):
    return _find_saved(store, form_id).to_record()


@router.delete("/{form_id}")
async def delete_form(form_id: str, store: FormBuilderStore = Depends(get_builder_store)):
    """Delete a saved form."""
    _find_saved(store, form_id)
    await store.dispatch(DeleteForm(formId=form_id))
    return {"status": "ok", "formId": form_id}


@router.post("/{form_id}/preview", response_model=PreviewOut)
async def preview_saved_form(
    form_id: str,
    body: SavedPreviewIn,
    store: FormBuilderStore = Depends(get_builder_store),
):
    """Run derived values and validation for a saved form against the given values."""
    form = _find_saved(store, form_id)
    values = {**initial_values(form.fields), **body.values}
    result = process_change(form.fields, values, body.changes)
    return PreviewOut(values=result.values, errors=result.errors, diagnostics=[vars(d) for d in result.diagnostics])
