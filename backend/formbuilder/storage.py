from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from formbuilder.schemas import FormSchema

logger = logging.getLogger(__name__)

_FORMS = TypeAdapter(List[FormSchema])


class MemoryBlobStore:
    """Key -> text store kept in a dict (tests, local runs)."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class MongoBlobStore:
    """Key -> text store backed by a motor collection, one document per key."""

    def __init__(self, collection):
        self.collection = collection

    async def get(self, key: str) -> Optional[str]:
        doc = await self.collection.find_one({"_id": key})
        if not doc:
            return None
        return doc.get("value")

    async def set(self, key: str, value: str) -> None:
        await self.collection.replace_one({"_id": key}, {"_id": key, "value": value}, upsert=True)

    async def delete(self, key: str) -> None:
        await self.collection.delete_one({"_id": key})


def decode_forms(text: Optional[str]) -> List[FormSchema]:
    """Parse the stored JSON array; raises ValueError when it is not a valid saved-forms list."""
    if not text:
        return []
    try:
        return _FORMS.validate_python(json.loads(text))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ValueError(f"invalid saved forms data: {e}") from e


def encode_forms(forms: List[FormSchema]) -> str:
    return json.dumps([f.to_record() for f in forms])


class SavedFormsRepository:
    """
    Saved forms live under a single key as a JSON array of form records.

    Storage problems never propagate: unreadable data loads as an empty list
    and failed writes are logged.
    """

    def __init__(self, blob_store, key: str = "formBuilder_savedForms"):
        self.blob_store = blob_store
        self.key = key

    async def load(self) -> List[FormSchema]:
        try:
            return decode_forms(await self.blob_store.get(self.key))
        except Exception as e:
            logger.error("Failed to load saved forms: %s", e)
            return []

    async def save(self, forms: List[FormSchema]) -> None:
        try:
            await self.blob_store.set(self.key, encode_forms(forms))
        except Exception as e:
            logger.error("Failed to save forms: %s", e)

    async def clear(self) -> None:
        try:
            await self.blob_store.delete(self.key)
        except Exception as e:
            logger.error("Failed to clear saved forms: %s", e)
