"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from food_resolver.api.models import ResolveRequest, ResolveResponse
from food_resolver.api.usage import router as usage_router
from food_resolver.app_logging import configure_logging
from food_resolver.containers import AppContainer
from food_resolver.domain.errors import InvalidQueryError, NoResultsError
from food_resolver.domain.food import FoodQuery, QueryKind


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container.sweeper.start()
        logger.info(
            "Resolver started with providers: %s",
            ", ".join(p.provider_id.value for p in app.state.container.providers)
            or "none",
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(usage_router)

    @app.exception_handler(InvalidQueryError)
    async def invalid_query_handler(
        request: Request, exc: InvalidQueryError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc)},
        )

    @app.exception_handler(NoResultsError)
    async def no_results_handler(request: Request, exc: NoResultsError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": str(exc), "quota_exceeded": exc.quota_exceeded},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/resolve")
    async def resolve(
        body: ResolveRequest,
        request: Request,
        x_user_id: str | None = Header(default=None),
        x_session_id: str | None = Header(default=None),
    ) -> ResolveResponse:
        """Resolve a food description into ranked nutrition records."""
        state_container: AppContainer = request.app.state.container
        query = _build_query(body)
        subject_key = _subject_key(body, request, x_user_id, x_session_id)
        result = await state_container.orchestrator.resolve(query, subject_key)
        return ResolveResponse.from_domain(result)

    return app


def _build_query(body: ResolveRequest) -> FoodQuery:
    """Translate a request body into a validated food query."""
    if body.query_kind is QueryKind.BARCODE:
        return FoodQuery.from_barcode(body.query, body.quantity, body.unit)
    if body.query_kind is QueryKind.IMAGE_GUESS:
        return FoodQuery.from_image_guess(
            body.query, body.quantity, body.unit, body.source_confidence
        )
    return FoodQuery.from_text(body.query, body.quantity, body.unit)


def _subject_key(
    body: ResolveRequest,
    request: Request,
    user_id: str | None,
    session_id: str | None,
) -> str:
    """Pick the metering subject: user, explicit key, guest session, then IP."""
    for candidate in (user_id, body.subject_key):
        if candidate and candidate.strip():
            return candidate.strip()
    if session_id and session_id.strip():
        return f"guest:{session_id.strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "unknown"
