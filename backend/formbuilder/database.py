from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient

from formbuilder.config import settings
from formbuilder.storage import MemoryBlobStore, MongoBlobStore


@lru_cache
def get_client() -> AsyncIOMotorClient:
    return AsyncIOMotorClient(settings.MONGO_URI)


@lru_cache
def get_blob_store():
    """Blob store selected by STORAGE_BACKEND; created once per process."""
    if settings.STORAGE_BACKEND == "memory":
        return MemoryBlobStore()
    db = get_client()[settings.DB_NAME]
    return MongoBlobStore(db[settings.KV_COLLECTION])
