"""Client for the discovery endpoints of The Movie Database (TMDB)."""

from __future__ import annotations

import logging
import random
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings
from ..errors import CatalogRequestError, ConfigurationError
from ..models import (
    MINISERIES_TYPE_CODE,
    CatalogPage,
    ContentKind,
    FilterSet,
    Genre,
    TitleDetails,
    normalize_details,
    normalize_result,
)
from ..utils import year_end, year_start

logger = logging.getLogger(__name__)

SORT_FIELDS: tuple[str, ...] = ("popularity", "{date}", "vote_average", "vote_count")
SORT_DIRECTIONS: tuple[str, ...] = ("asc", "desc")


def sort_options(kind: ContentKind) -> tuple[str, ...]:
    """Return the ``sort_by`` values supported for discovery of ``kind``."""

    return tuple(
        f"{field.format(date=kind.date_field)}.{direction}"
        for field in SORT_FIELDS
        for direction in SORT_DIRECTIONS
    )


class TMDBClient:
    """Thin wrapper around the TMDB HTTP API.

    Every call is a single request: failures are raised, never retried here.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        *,
        rng: random.Random | None = None,
    ):
        self._settings = settings
        self._client = http_client
        self._rng = rng or random.Random()

    @property
    def image_base_url(self) -> str:
        return str(self._settings.tmdb_image_url)

    async def discover(self, filters: FilterSet, page: int = 1) -> CatalogPage:
        """Fetch one page of discovery results for ``filters``."""

        if page < 1:
            raise ValueError("Page numbers start at 1")

        params = self.build_discover_params(filters, page)
        data = await self._get(f"/discover/{filters.kind.endpoint}", params)

        raw_results = data.get("results") or []
        if not isinstance(raw_results, list):
            raise CatalogRequestError("TMDB returned a malformed result list")

        items = []
        for entry in raw_results:
            if not isinstance(entry, dict) or entry.get("id") is None:
                continue
            try:
                items.append(normalize_result(filters.kind, entry))
            except ValidationError:
                logger.debug("Skipping malformed TMDB result %s", entry.get("id"))

        return CatalogPage(
            page=page,
            items=items,
            total_pages=_as_int(data.get("total_pages")),
            total_results=_as_int(data.get("total_results")),
        )

    def build_discover_params(self, filters: FilterSet, page: int) -> dict[str, Any]:
        """Translate ``filters`` into TMDB discovery query parameters."""

        params: dict[str, Any] = {
            "page": page,
            "include_adult": "false",
            "vote_average.gte": filters.min_rating,
            "vote_count.gte": self._settings.min_vote_count,
            "sort_by": self._rng.choice(sort_options(filters.kind)),
        }
        if filters.genres:
            params["with_genres"] = ",".join(str(genre) for genre in sorted(filters.genres))

        date_field = filters.kind.date_field
        if filters.year_from is not None:
            params[f"{date_field}.gte"] = year_start(filters.year_from)
        if filters.year_to is not None:
            params[f"{date_field}.lte"] = year_end(filters.year_to)

        if filters.language:
            params["with_original_language"] = filters.language
        if filters.kind is ContentKind.MINISERIES:
            params["with_type"] = MINISERIES_TYPE_CODE
        return params

    async def validate_api_key(self) -> None:
        """Check the configured key against ``/configuration``.

        Raises :class:`ConfigurationError` when the key is missing or rejected
        and :class:`CatalogRequestError` when TMDB cannot be reached.
        """

        await self._get("/configuration", {})

    async def get_genres(self, kind: ContentKind) -> list[Genre]:
        """Return the genre list for ``kind`` in the order TMDB reports it."""

        data = await self._get(f"/genre/{kind.endpoint}/list", {})
        return [
            Genre.model_validate(entry)
            for entry in data.get("genres") or []
            if isinstance(entry, dict)
        ]

    async def get_details(self, kind: ContentKind, item_id: int) -> TitleDetails:
        """Fetch the detail record of a single title."""

        data = await self._get(f"/{kind.endpoint}/{item_id}", {})
        try:
            return normalize_details(kind, data)
        except ValidationError as exc:
            raise CatalogRequestError(
                f"TMDB returned malformed details for {kind.endpoint} {item_id}"
            ) from exc

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        api_key = self._settings.tmdb_api_key
        if not api_key:
            raise ConfigurationError("TMDB API key is required to query the catalog")

        query = {
            **params,
            "api_key": api_key,
            "language": self._settings.tmdb_language,
        }
        try:
            response = await self._client.get(path, params=query)
        except httpx.HTTPError as exc:
            logger.warning("TMDB request to %s failed: %s", path, exc.__class__.__name__)
            raise CatalogRequestError(f"TMDB request failed: {exc}") from exc

        if response.status_code == 401:
            logger.error("TMDB rejected the configured API key")
            raise ConfigurationError("TMDB rejected the configured API key")
        if response.status_code >= 400:
            logger.warning(
                "TMDB request to %s returned %s", path, response.status_code
            )
            raise CatalogRequestError(
                f"TMDB API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise CatalogRequestError(
                "TMDB returned an invalid JSON payload",
                status_code=response.status_code,
            ) from exc
        if not isinstance(data, dict):
            raise CatalogRequestError(
                "TMDB returned an unexpected payload",
                status_code=response.status_code,
            )
        return data


def _as_int(value: object) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
