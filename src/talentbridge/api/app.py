from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from talentbridge.api.routes import router as api_router
from talentbridge.config import Settings, get_settings
from talentbridge.core.tasks import BackgroundTaskQueue
from talentbridge.db.init import init_database
from talentbridge.db.session import Store
from talentbridge.llm.extraction import ExtractionClient, StructuredExtractionClient
from talentbridge.logging_config import configure_logging


def create_app(
    settings: Settings | None = None,
    *,
    extraction_client: ExtractionClient | None = None,
    store: Store | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.store = store or Store(settings)
    app.state.extraction_client = extraction_client or StructuredExtractionClient(settings)
    app.state.task_queue = BackgroundTaskQueue()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        await init_database(app.state.store)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.task_queue.drain()
        await app.state.store.dispose()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(api_router)
    return app
