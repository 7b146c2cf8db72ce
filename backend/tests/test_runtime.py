from datetime import date

from formbuilder.runtime import find_derived_chains, initial_values, process_change, recompute_derived
from formbuilder.schemas import DerivedConfig, FieldType, FormField
from formbuilder.validation import REQUIRED_MESSAGE, min_length_message

TODAY = date(2024, 6, 14)


def test_initial_values():
    fields = [
        FormField(id="t", type=FieldType.text),
        FormField(id="c", type=FieldType.checkbox),
        FormField(id="n", type=FieldType.number, defaultValue=3),
    ]
    assert initial_values(fields) == {"t": "", "c": False, "n": 3}


def test_process_change_recomputes_and_validates(profile_fields):
    values = initial_values(profile_fields)
    changes = {"first": "Ada", "last": "Lovelace", "dob": "2000-06-15", "a": "1", "b": 2}

    result = process_change(profile_fields, values, changes, today=TODAY)

    assert result.values["full"] == "Ada Lovelace"
    assert result.values["age"] == 23
    assert result.values["total"] == 5
    assert all(error is None for error in result.errors.values())
    assert result.diagnostics == []
    # the caller's snapshot is left alone
    assert values["full"] == ""


def test_process_change_reports_errors(profile_fields):
    result = process_change(profile_fields, initial_values(profile_fields), {"first": "A"}, today=TODAY)
    assert result.errors["first"] == min_length_message(2)

    result = process_change(profile_fields, initial_values(profile_fields), today=TODAY)
    assert result.errors["first"] == REQUIRED_MESSAGE


def test_edits_to_derived_fields_are_ignored(profile_fields):
    values = initial_values(profile_fields)
    result = process_change(profile_fields, values, {"a": 1, "b": 1, "total": 99}, today=TODAY)
    assert result.values["total"] == 3


def _chain():
    return [
        FormField(id="x", type=FieldType.number),
        FormField(id="y", type=FieldType.number, derived=DerivedConfig(parentFields=["x"], formula="x * 2")),
        FormField(id="z", type=FieldType.number, derived=DerivedConfig(parentFields=["y"], formula="y + 1")),
    ]


def test_chained_derived_fields_lag_one_pass():
    fields = _chain()
    first = recompute_derived(fields, {"x": 5, "y": "", "z": ""})
    assert first["y"] == 10
    # z read y before this pass updated it
    assert first["z"] == 1

    second = recompute_derived(fields, first)
    assert second["z"] == 11


def test_find_derived_chains():
    fields = _chain() + [
        FormField(id="p", type=FieldType.number, derived=DerivedConfig(parentFields=["q", "ghost"], formula="sum")),
        FormField(id="q", type=FieldType.number, derived=DerivedConfig(parentFields=["p"], formula="sum")),
    ]
    found = {(d.fieldId, d.kind) for d in find_derived_chains(fields)}
    assert ("z", "chained") in found
    assert ("p", "unknown-parent") in found
    assert ("p", "cycle") in found
    assert ("q", "cycle") in found
    assert ("y", "chained") not in found


def test_process_change_returns_diagnostics():
    result = process_change(_chain(), {"x": 1})
    assert [(d.fieldId, d.kind) for d in result.diagnostics] == [("z", "chained")]
