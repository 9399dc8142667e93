from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import auth.infrastructure.models  # noqa: F401
import documents.infrastructure.models  # noqa: F401
from auth.interfaces.routes import router as auth_router
from collaboration.application.registry import SessionRegistry
from collaboration.interfaces.ws_handler import router as ws_router
from documents.domain.versioning import SnapshotPolicy, VersionLedger
from documents.infrastructure.document_repository import repository_factory
from documents.interfaces.routes import router as documents_router
from documents.interfaces.storage_routes import router as storage_router
from shared.config import settings
from shared.exceptions import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from shared.infrastructure.database import Base, async_session, engine
from shared.infrastructure.timestamps import utcnow
from shared.logging_config import configure_logging

configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title="Collaborative Document Editor",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.registry = SessionRegistry(
    repository_factory(async_session),
    ledger=VersionLedger(settings.MAX_VERSIONS),
    policy=SnapshotPolicy(timedelta(minutes=settings.AUTO_SNAPSHOT_INTERVAL_MINUTES)),
    clock=utcnow,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(documents_router)
app.include_router(storage_router)
app.include_router(ws_router)


@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(ConflictError)
async def conflict_handler(request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": exc.message})


@app.exception_handler(AuthenticationError)
async def auth_error_handler(request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content={"detail": exc.message})


@app.exception_handler(AuthorizationError)
async def forbidden_handler(request, exc: AuthorizationError):
    return JSONResponse(status_code=403, content={"detail": exc.message})


@app.exception_handler(ValidationError)
async def validation_handler(request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(PersistenceError)
async def persistence_handler(request, exc: PersistenceError):
    return JSONResponse(status_code=503, content={"detail": exc.message})


@app.exception_handler(AppError)
async def app_error_handler(request, exc: AppError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.get("/health")
async def health_check():
    return {"status": "ok", "sessions": len(app.state.registry)}
