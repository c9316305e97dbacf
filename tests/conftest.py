"""Pytest configuration and test helpers."""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from app.config import Settings  # noqa: E402

DETAIL_PATH_RE = re.compile(r"/(movie|tv)/(\d+)$")


def build_settings(**overrides: Any) -> Settings:
    """Return a settings object with defaults suitable for tests."""

    base: dict[str, Any] = {
        "TMDB_API_KEY": "test-key",
        "TMDB_LANGUAGE": "pt-BR",
        "POOL_INITIAL_RETRIES": 0,
        "POOL_RETRY_BACKOFF": 0,
    }
    base.update(overrides)
    return Settings(_env_file=None, **base)  # type: ignore[arg-type]


def movie_result(item_id: int, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": item_id,
        "title": f"Movie {item_id}",
        "original_title": f"Original {item_id}",
        "overview": "A film.",
        "poster_path": f"/poster{item_id}.jpg",
        "backdrop_path": None,
        "vote_average": 7.5,
        "vote_count": 250,
        "release_date": "2021-06-01",
        "genre_ids": [18],
        "original_language": "en",
        "popularity": 12.5,
    }
    payload.update(overrides)
    return payload


def tv_result(item_id: int, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": item_id,
        "name": f"Show {item_id}",
        "original_name": f"Original Show {item_id}",
        "overview": "A show.",
        "poster_path": None,
        "backdrop_path": f"/backdrop{item_id}.jpg",
        "vote_average": 8.1,
        "vote_count": 900,
        "first_air_date": "2019-01-15",
        "genre_ids": [18, 80],
        "original_language": "ko",
        "popularity": 40.0,
    }
    payload.update(overrides)
    return payload


class FakeTMDB:
    """In-memory stand-in for the TMDB HTTP API."""

    def __init__(self) -> None:
        self.pages: dict[int, list[dict[str, Any]]] = {}
        self.total_pages: int | None = None
        self.failures: dict[int, int] = {}
        self.transient_failures: dict[int, int] = {}
        self.disconnects: set[int] = set()
        self.rejected_keys: set[str] = set()
        self.genres: dict[str, list[dict[str, Any]]] = {
            "movie": [{"id": 28, "name": "Ação"}, {"id": 18, "name": "Drama"}],
            "tv": [{"id": 10759, "name": "Action & Adventure"}, {"id": 18, "name": "Drama"}],
        }
        self.details: dict[tuple[str, int], dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []

    @property
    def discover_requests(self) -> list[httpx.Request]:
        return [request for request in self.requests if "/discover/" in request.url.path]

    def requested_pages(self) -> list[int]:
        return [int(request.url.params["page"]) for request in self.discover_requests]

    def set_pages(self, pages: dict[int, list[dict[str, Any]]]) -> None:
        self.pages = pages
        self.total_pages = len(pages)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.params.get("api_key") in self.rejected_keys:
            return httpx.Response(401, json={"status_message": "Invalid API key"})

        if path.endswith("/configuration"):
            return httpx.Response(200, json={"images": {"base_url": "https://image.tmdb.org/t/p/"}})

        if "/discover/" in path:
            page = int(request.url.params.get("page", "1"))
            if page in self.disconnects:
                raise httpx.ConnectError("connection refused", request=request)
            if self.transient_failures.get(page, 0) > 0:
                self.transient_failures[page] -= 1
                return httpx.Response(503, json={"status_message": "unavailable"})
            if page in self.failures:
                return httpx.Response(self.failures[page], json={"status_message": "error"})
            results = self.pages.get(page, [])
            total_pages = self.total_pages if self.total_pages is not None else len(self.pages)
            return httpx.Response(
                200,
                json={
                    "page": page,
                    "results": results,
                    "total_pages": total_pages,
                    "total_results": sum(len(entries) for entries in self.pages.values()),
                },
            )

        if path.endswith("/list"):
            endpoint = path.rstrip("/").split("/")[-2]
            return httpx.Response(200, json={"genres": self.genres.get(endpoint, [])})

        match = DETAIL_PATH_RE.search(path)
        if match:
            key = (match.group(1), int(match.group(2)))
            if key not in self.details:
                return httpx.Response(404, json={"status_message": "not found"})
            return httpx.Response(200, json=self.details[key])

        return httpx.Response(404, json={"status_message": "unknown endpoint"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="https://api.example.com/3",
        )


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


@pytest.fixture
def fake_tmdb() -> FakeTMDB:
    return FakeTMDB()
