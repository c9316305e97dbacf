"""Entry point for the FastAPI-powered suggestion service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import settings
from .errors import CatalogRequestError, ConfigurationError
from .models import ContentKind, FilterSet
from .services.suggestions import DEFAULT_SESSION, SuggestionService
from .services.tmdb import TMDBClient
from .utils import parse_id_list

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


class SuggestionRequest(BaseModel):
    """Body of a suggestion request."""

    model_config = ConfigDict(populate_by_name=True)

    filters: dict[str, Any] = Field(default_factory=dict)
    shown_ids: list[int] = Field(
        default_factory=list,
        validation_alias=AliasChoices("shown_ids", "shownIds", "shown"),
    )
    session: str = Field(
        default=DEFAULT_SESSION,
        max_length=128,
        validation_alias=AliasChoices("session", "sessionId"),
    )

    @field_validator("shown_ids", mode="before")
    @classmethod
    def _parse_shown(cls, value: object) -> list[int]:
        return parse_id_list(value)

    @field_validator("session", mode="before")
    @classmethod
    def _default_session(cls, value: object) -> object:
        if value is None:
            return DEFAULT_SESSION
        if isinstance(value, str):
            return value.strip() or DEFAULT_SESSION
        return value


async def check_credentials(catalog: TMDBClient) -> bool | None:
    """Validate the TMDB key at startup.

    Returns ``None`` when TMDB could not be reached, so the key is unknown.
    Startup continues either way; requests then report the failure.
    """

    try:
        await catalog.validate_api_key()
    except ConfigurationError as exc:
        logger.error("%s; suggestions are unavailable until it is fixed", exc)
        return False
    except CatalogRequestError as exc:
        logger.warning("Could not validate the TMDB API key: %s", exc)
        return None
    logger.info("TMDB API key accepted")
    return True


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb_http_client = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(settings.request_timeout_seconds, connect=5.0),
            headers={"Accept": "application/json"},
        )
    )
    catalog = TMDBClient(settings, tmdb_http_client)
    fastapi_app.state.credentials_valid = await check_credentials(catalog)
    fastapi_app.state.suggestion_service = SuggestionService(settings, catalog)

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Random title suggestions from TMDB discovery filters",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_suggestion_service(fastapi_app: FastAPI) -> SuggestionService:
    service = getattr(fastapi_app.state, "suggestion_service", None)
    if not isinstance(service, SuggestionService):
        raise RuntimeError("Suggestion service not initialised")
    return service


def _parse_kind(kind: str) -> ContentKind:
    try:
        return ContentKind.parse(kind)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Unsupported content type") from exc


def _catalog_failure(exc: Exception) -> HTTPException:
    if isinstance(exc, ConfigurationError):
        return HTTPException(status_code=503, detail=str(exc))
    status = getattr(exc, "status_code", None)
    return HTTPException(
        status_code=502,
        detail={"message": str(exc), "upstream_status": status},
    )


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/genres/{kind}")
    async def genres(kind: str) -> dict[str, Any]:
        content_kind = _parse_kind(kind)
        service = get_suggestion_service(fastapi_app)
        try:
            results = await service.get_genres(content_kind)
        except (ConfigurationError, CatalogRequestError) as exc:
            raise _catalog_failure(exc) from exc
        return {"genres": [genre.model_dump() for genre in results]}

    @fastapi_app.post("/suggestions")
    async def suggestion(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError as exc:
            raise HTTPException(status_code=400, detail="Invalid payload") from exc
        if not isinstance(payload, dict):
            raise HTTPException(status_code=400, detail="Invalid payload")

        try:
            body = SuggestionRequest.model_validate(payload)
            filters = FilterSet.model_validate(body.filters)
        except ValidationError as exc:
            raise HTTPException(
                status_code=400, detail=exc.errors(include_url=False, include_context=False)
            ) from exc

        service = get_suggestion_service(fastapi_app)
        try:
            item = await service.get_random_suggestion(
                filters, body.shown_ids, session_id=body.session
            )
        except (ConfigurationError, CatalogRequestError) as exc:
            raise _catalog_failure(exc) from exc

        image_base = service.catalog.image_base_url
        return {
            "suggestion": item.to_payload(image_base) if item is not None else None,
            "poolSize": service.pool_for(body.session).size,
        }

    @fastapi_app.delete("/suggestions/pool")
    async def clear_pool(session: str = DEFAULT_SESSION) -> dict[str, Any]:
        service = get_suggestion_service(fastapi_app)
        cleared = service.clear_pool(session.strip() or DEFAULT_SESSION)
        return {"status": "cleared", "hadPool": cleared}

    @fastapi_app.get("/titles/{kind}/{item_id}")
    async def title_details(kind: str, item_id: int) -> dict[str, Any]:
        content_kind = _parse_kind(kind)
        service = get_suggestion_service(fastapi_app)
        try:
            details = await service.get_item_details(content_kind, item_id)
        except ConfigurationError as exc:
            raise _catalog_failure(exc) from exc
        except CatalogRequestError as exc:
            if exc.status_code == 404:
                raise HTTPException(status_code=404, detail="Title not found") from exc
            raise _catalog_failure(exc) from exc
        return details.to_payload(service.catalog.image_base_url)


app = create_app()
