import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formbuilder.config import settings
from formbuilder.routers.builder import router as builder_router
from formbuilder.routers.forms import router as forms_router
from formbuilder.routers.runtime import router as runtime_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Form Builder Backend (FastAPI + Mongo)")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(forms_router)
app.include_router(builder_router)
app.include_router(runtime_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
