from fastapi import APIRouter

from formbuilder.derived import compute_derived_value
from formbuilder.runtime import initial_values, process_change
from formbuilder.schemas import EvaluateIn, PreviewIn, PreviewOut, ValidateValueIn
from formbuilder.validation import validate_field_value

router = APIRouter(prefix="/api/runtime", tags=["runtime"])


@router.post("/preview", response_model=PreviewOut)
async def preview(body: PreviewIn):
    """
    Recompute derived fields and validate a value snapshot.

    Fields missing from `values` start from their default value; `changes`
    holds the latest user edits and is applied before recomputing.
    """
    values = {**initial_values(body.fields), **body.values}
    result = process_change(body.fields, values, body.changes)
    return PreviewOut(values=result.values, errors=result.errors, diagnostics=[vars(d) for d in result.diagnostics])


@router.post("/evaluate")
async def evaluate(body: EvaluateIn):
    return {"value": compute_derived_value(body.formula, body.parentValues, body.fields)}


@router.post("/validate-value")
async def validate_value(body: ValidateValueIn):
    return {"error": validate_field_value(body.value, body.rules)}
