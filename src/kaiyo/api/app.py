"""FastAPI application factory."""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from .. import __version__
from ..config import Settings
from ..runtime import ChatRuntime, build_runtime
from .routes import get_runtime, router
from .schemas import HealthResponse

SHUTDOWN_GRACE_SECONDS = 30.0


def create_app(
    runtime: ChatRuntime | None = None,
    settings: Settings | None = None
) -> FastAPI:
    """Create the HTTP application.

    Args:
        runtime: Prebuilt runtime (e.g. with a fake provider); it is not
            closed on shutdown
        settings: Settings used to build the runtime at startup when none
            is given

    Returns:
        The FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.runtime is None
        if owned:
            app.state.runtime = build_runtime(settings or Settings())
        logger.info("Kaiyo API started")

        yield

        pending = set(app.state.turn_tasks)
        if pending:
            logger.info(f"Waiting for {len(pending)} turn(s) to finish")
            _, still_running = await asyncio.wait(pending, timeout=SHUTDOWN_GRACE_SECONDS)
            for task in still_running:
                task.cancel()
        if owned:
            await app.state.runtime.aclose()
            app.state.runtime = None
        logger.info("Kaiyo API shutdown complete")

    app = FastAPI(
        title="Kaiyo AI",
        description="Travel-planning chat backend with streamed answers and itinerary extraction",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.state.turn_tasks = set()

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Malformed bodies are client errors like empty content.
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        return "Welcome to Kaiyo AI!"

    @app.get("/healthz", response_model=HealthResponse)
    async def healthz(request: Request) -> HealthResponse:
        current = get_runtime(request)
        return HealthResponse(
            provider=current.settings.llm_provider,
            model=current.profile.model_name,
            tools=current.registry.names,
        )

    app.include_router(router)
    return app
