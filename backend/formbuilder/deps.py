from typing import Optional

from fastapi import Depends

from formbuilder.config import settings
from formbuilder.database import get_blob_store
from formbuilder.storage import SavedFormsRepository
from formbuilder.store import FormBuilderStore

_builder_store: Optional[FormBuilderStore] = None


def get_repository() -> SavedFormsRepository:
    return SavedFormsRepository(get_blob_store(), settings.STORAGE_KEY)


async def get_builder_store(repository: SavedFormsRepository = Depends(get_repository)) -> FormBuilderStore:
    """The process-wide builder store, loaded from storage on first use."""
    global _builder_store
    if _builder_store is None:
        _builder_store = await FormBuilderStore.create(repository)
    return _builder_store
