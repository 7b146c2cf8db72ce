from typing import List, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    DB_NAME: str = "formbuilder"
    STORAGE_BACKEND: Literal["mongo", "memory"] = "mongo"
    STORAGE_KEY: str = "formBuilder_savedForms"  # key holding the saved-forms JSON array
    KV_COLLECTION: str = "kv"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"


settings = Settings()
