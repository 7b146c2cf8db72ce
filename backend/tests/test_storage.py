import asyncio
import json
from datetime import datetime, timezone

from formbuilder.schemas import DerivedConfig, FieldType, FormField, FormSchema, ValidationRules
from formbuilder.storage import MemoryBlobStore, SavedFormsRepository, encode_forms


def _forms():
    return [
        FormSchema(
            id="f1",
            name="Signup",
            createdAt=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
            fields=[
                FormField(id="email", type=FieldType.text, label="Email", required=True,
                          validation=ValidationRules(required=True, email=True)),
                FormField(id="plan", type=FieldType.select, label="Plan", options=["free", "pro"],
                          defaultValue="free"),
                FormField(id="n", type=FieldType.number, label="Seats"),
                FormField(id="cost", type=FieldType.number, label="Cost",
                          derived=DerivedConfig(parentFields=["n"], formula="n * 10")),
            ],
        ),
        FormSchema(id="f2", name="Empty", createdAt=datetime(2024, 2, 1, tzinfo=timezone.utc)),
    ]


def test_save_and_load_round_trip(repository):
    asyncio.run(repository.save(_forms()))
    assert asyncio.run(repository.load()) == _forms()


def test_stored_layout(blob_store, repository):
    asyncio.run(repository.save(_forms()))
    records = json.loads(blob_store.data["formBuilder_savedForms"])

    assert records[0]["createdAt"].startswith("2024-01-02T03:04:05")
    email = records[0]["fields"][0]
    assert email["validation"] == {"required": True, "email": True}
    assert "derived" not in email
    assert records[0]["fields"][3]["derived"] == {"parentFields": ["n"], "formula": "n * 10"}


def test_missing_or_malformed_data_loads_empty():
    for stored in (None, "", "{not json", json.dumps({"a": 1}), json.dumps([{"id": 1}])):
        data = {} if stored is None else {"formBuilder_savedForms": stored}
        repository = SavedFormsRepository(MemoryBlobStore(data))
        assert asyncio.run(repository.load()) == []


def test_clear(blob_store, repository):
    blob_store.data["formBuilder_savedForms"] = encode_forms(_forms())
    asyncio.run(repository.clear())
    assert asyncio.run(repository.load()) == []


class _BrokenStore:
    async def get(self, key):
        raise OSError("disk gone")

    async def set(self, key, value):
        raise OSError("disk gone")

    async def delete(self, key):
        raise OSError("disk gone")


def test_storage_failures_do_not_propagate():
    repository = SavedFormsRepository(_BrokenStore())
    assert asyncio.run(repository.load()) == []
    asyncio.run(repository.save(_forms()))
    asyncio.run(repository.clear())
