from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from formbuilder.derived import compute_derived_value
from formbuilder.schemas import FieldType, FormField
from formbuilder.validation import compile_validator

logger = logging.getLogger(__name__)


@dataclass
class DerivedDiagnostic:
    fieldId: str
    kind: str  # "chained" | "unknown-parent" | "cycle"
    detail: str


@dataclass
class RuntimeResult:
    values: Dict[str, Any]
    errors: Dict[str, Optional[str]]
    diagnostics: List[DerivedDiagnostic] = field(default_factory=list)


def initial_values(fields: Sequence[FormField]) -> Dict[str, Any]:
    """Starting snapshot: default values, or an empty value per type."""
    values: Dict[str, Any] = {}
    for f in fields:
        if f.defaultValue:
            values[f.id] = f.defaultValue
        else:
            values[f.id] = False if f.type == FieldType.checkbox else ""
    return values


def find_derived_chains(fields: Sequence[FormField]) -> List[DerivedDiagnostic]:
    """Report derived fields that depend on other derived fields, unknown ids or cycles."""
    by_id = {f.id: f for f in fields}
    diagnostics: List[DerivedDiagnostic] = []

    for f in fields:
        if not f.is_derived:
            continue
        for parent_id in f.derived.parentFields:
            parent = by_id.get(parent_id)
            if parent is None:
                diagnostics.append(DerivedDiagnostic(f.id, "unknown-parent", f"parent '{parent_id}' is not in the form"))
            elif parent.is_derived:
                diagnostics.append(DerivedDiagnostic(f.id, "chained", f"parent '{parent_id}' is itself derived"))

    # walk derived -> derived edges looking for a way back to the start
    for f in fields:
        if not f.is_derived:
            continue
        stack = [p for p in f.derived.parentFields if p in by_id and by_id[p].is_derived]
        seen = set()
        while stack:
            current = stack.pop()
            if current == f.id:
                diagnostics.append(DerivedDiagnostic(f.id, "cycle", f"'{f.id}' depends on itself"))
                break
            if current in seen:
                continue
            seen.add(current)
            stack.extend(p for p in by_id[current].derived.parentFields if p in by_id and by_id[p].is_derived)

    return diagnostics


def recompute_derived(
    fields: Sequence[FormField],
    values: Mapping[str, Any],
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Recompute every derived field once, in field order.

    Parents are read from the snapshot as passed in, so a derived field whose
    parent is also derived sees the parent's previous value.
    """
    snapshot = dict(values)
    updated = dict(values)
    for f in fields:
        if not f.is_derived:
            continue
        parent_values = {pid: snapshot.get(pid) for pid in f.derived.parentFields}
        updated[f.id] = compute_derived_value(f.derived.formula, parent_values, fields, today=today)
    return updated


def process_change(
    fields: Sequence[FormField],
    values: Mapping[str, Any],
    changes: Optional[Mapping[str, Any]] = None,
    today: Optional[date] = None,
) -> RuntimeResult:
    """Apply user edits, refresh derived values, then validate the result."""
    derived_ids = {f.id for f in fields if f.is_derived}
    snapshot = dict(values)
    for field_id, value in (changes or {}).items():
        if field_id in derived_ids:
            logger.debug("Ignoring edit to derived field %s", field_id)
            continue
        snapshot[field_id] = value

    diagnostics = find_derived_chains(fields)
    for d in diagnostics:
        logger.warning("Derived field %s: %s", d.fieldId, d.detail)

    snapshot = recompute_derived(fields, snapshot, today=today)
    errors = compile_validator(fields).check(snapshot)
    return RuntimeResult(values=snapshot, errors=errors, diagnostics=diagnostics)
