"""Suggestion pools built from exhaustive TMDB discovery sweeps."""

from __future__ import annotations

import asyncio
import logging
import random
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Collection, Iterable, Sequence

from ..config import Settings
from ..errors import CatalogRequestError
from ..models import CatalogItem, CatalogPage, ContentKind, FilterSet, Genre, TitleDetails
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"


class PoolState(str, Enum):
    EMPTY = "empty"
    BUILDING = "building"
    READY = "ready"


@dataclass(frozen=True, slots=True)
class PoolSnapshot:
    """A built pool together with the filters it was built for."""

    filters: FilterSet
    items: tuple[CatalogItem, ...]


def deduplicate(items: Iterable[CatalogItem]) -> list[CatalogItem]:
    """Drop repeated identifiers, keeping the first occurrence."""

    seen: set[int] = set()
    unique: list[CatalogItem] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique


def select_unseen(
    items: Sequence[CatalogItem], shown_ids: Collection[int]
) -> CatalogItem | None:
    """Return the first item not yet shown, recycling once all have been."""

    if not items:
        return None
    shown = set(shown_ids)
    for item in items:
        if item.id not in shown:
            return item
    return items[0]


class SuggestionPool:
    """Caches one shuffled pool of titles keyed by the active filter set."""

    def __init__(
        self,
        catalog: TMDBClient,
        settings: Settings,
        *,
        rng: random.Random | None = None,
    ):
        self._catalog = catalog
        self._settings = settings
        self._rng = rng or random.Random()
        self._snapshot: PoolSnapshot | None = None
        self._building_for: FilterSet | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> PoolState:
        if self._building_for is not None:
            return PoolState.BUILDING
        if self._snapshot is not None:
            return PoolState.READY
        return PoolState.EMPTY

    @property
    def filters(self) -> FilterSet | None:
        snapshot = self._snapshot
        return snapshot.filters if snapshot else None

    @property
    def items(self) -> tuple[CatalogItem, ...]:
        snapshot = self._snapshot
        return snapshot.items if snapshot else ()

    @property
    def size(self) -> int:
        return len(self.items)

    async def get_random_suggestion(
        self, filters: FilterSet, shown_ids: Collection[int] = ()
    ) -> CatalogItem | None:
        """Return the next title for ``filters`` that is not in ``shown_ids``."""

        snapshot = await self.ensure(filters)
        return select_unseen(snapshot.items, shown_ids)

    async def ensure(self, filters: FilterSet) -> PoolSnapshot:
        """Return the pool for ``filters``, building it when the key changed."""

        snapshot = self._snapshot
        if snapshot is not None and snapshot.filters == filters:
            logger.debug("Reusing pool of %d titles for %s", len(snapshot.items), filters.describe())
            return snapshot

        async with self._lock:
            # Another caller may have finished the same build while we waited.
            snapshot = self._snapshot
            if snapshot is not None and snapshot.filters == filters:
                return snapshot

            self._snapshot = None
            generation = self._generation
            self._building_for = filters
            try:
                items = await self._build(filters)
            finally:
                self._building_for = None

            snapshot = PoolSnapshot(filters=filters, items=tuple(items))
            if generation == self._generation:
                self._snapshot = snapshot
            else:
                logger.info("Pool cleared during build; discarding sweep for %s", filters.describe())
            return snapshot

    def clear(self) -> None:
        """Drop the current pool so the next request triggers a fresh sweep."""

        self._generation += 1
        self._snapshot = None

    async def _build(self, filters: FilterSet) -> list[CatalogItem]:
        logger.info("Building suggestion pool for %s", filters.describe())

        first_page = await self._fetch_first_page(filters)
        if not first_page.items:
            logger.info("No titles match %s", filters.describe())
            return []

        collected: list[CatalogItem] = list(first_page.items)
        last_page = min(first_page.total_pages, self._settings.pool_page_cap)
        batch_size = self._settings.pool_batch_size
        pages_fetched = 1

        for batch_start in range(2, last_page + 1, batch_size):
            pages = list(range(batch_start, min(batch_start + batch_size, last_page + 1)))
            results = await asyncio.gather(
                *(self._catalog.discover(filters, page) for page in pages),
                return_exceptions=True,
            )

            failed_pages: list[int] = []
            for page, result in zip(pages, results):
                if isinstance(result, CatalogPage):
                    collected.extend(result.items)
                    pages_fetched += 1
                elif isinstance(result, Exception):
                    failed_pages.append(page)
                else:
                    raise result

            if failed_pages:
                logger.warning(
                    "Stopping sweep for %s after pages %s failed; keeping %d pages",
                    filters.describe(),
                    ", ".join(str(page) for page in failed_pages),
                    pages_fetched,
                )
                break

        unique = deduplicate(collected)
        self._rng.shuffle(unique)
        logger.info(
            "Built pool of %d titles for %s from %d of %d pages",
            len(unique),
            filters.describe(),
            pages_fetched,
            last_page,
        )
        return unique

    async def _fetch_first_page(self, filters: FilterSet) -> CatalogPage:
        attempt = 0
        while True:
            try:
                return await self._catalog.discover(filters, 1)
            except CatalogRequestError as exc:
                attempt += 1
                if not exc.is_transient or attempt > self._settings.pool_initial_retries:
                    logger.warning(
                        "Failed to fetch first page for %s: %s", filters.describe(), exc
                    )
                    raise
                backoff = min(
                    self._settings.pool_retry_backoff_seconds * 2 ** (attempt - 1), 5.0
                )
                logger.info(
                    "Transient error fetching first page for %s. Retrying in %.1fs",
                    filters.describe(),
                    backoff,
                )
                await asyncio.sleep(backoff)


class SuggestionService:
    """Owns one suggestion pool per session and exposes catalog lookups."""

    def __init__(
        self,
        settings: Settings,
        catalog: TMDBClient,
        *,
        rng: random.Random | None = None,
    ):
        self._settings = settings
        self._catalog = catalog
        self._rng = rng or random.Random()
        self._pools: OrderedDict[str, SuggestionPool] = OrderedDict()

    @property
    def catalog(self) -> TMDBClient:
        return self._catalog

    def pool_for(self, session_id: str = DEFAULT_SESSION) -> SuggestionPool:
        """Return the pool owned by ``session_id``, creating it on first use."""

        pool = self._pools.get(session_id)
        if pool is not None:
            self._pools.move_to_end(session_id)
            return pool

        pool = SuggestionPool(self._catalog, self._settings, rng=self._rng)
        self._pools[session_id] = pool
        while len(self._pools) > self._settings.max_sessions:
            evicted, _ = self._pools.popitem(last=False)
            logger.debug("Evicted suggestion pool for session %s", evicted)
        return pool

    async def get_genres(self, kind: ContentKind) -> list[Genre]:
        return await self._catalog.get_genres(kind)

    async def get_random_suggestion(
        self,
        filters: FilterSet,
        shown_ids: Collection[int] = (),
        *,
        session_id: str = DEFAULT_SESSION,
    ) -> CatalogItem | None:
        pool = self.pool_for(session_id)
        return await pool.get_random_suggestion(filters, shown_ids)

    def clear_pool(self, session_id: str = DEFAULT_SESSION) -> bool:
        """Reset the session's pool. Returns whether the session had one."""

        pool = self._pools.get(session_id)
        if pool is None:
            return False
        pool.clear()
        return True

    async def get_item_details(self, kind: ContentKind, item_id: int) -> TitleDetails:
        return await self._catalog.get_details(kind, item_id)
