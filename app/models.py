"""Pydantic models describing filters and catalog payloads."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from .utils import build_image_url, parse_id_list, parse_optional_int, parse_tmdb_date

IMAGE_BASE_URL = "https://image.tmdb.org/t/p"
POSTER_SIZE = "w500"
BACKDROP_SIZE = "w1280"

ANY_LANGUAGE = "any"
MINISERIES_TYPE_CODE = 2


class ContentKind(str, Enum):
    """Kinds of titles that can be suggested."""

    MOVIE = "movie"
    TV = "tv"
    MINISERIES = "miniseries"

    @property
    def endpoint(self) -> str:
        """TMDB path segment queried for this kind."""

        return "movie" if self is ContentKind.MOVIE else "tv"

    @property
    def date_field(self) -> str:
        return "primary_release_date" if self is ContentKind.MOVIE else "first_air_date"

    @classmethod
    def parse(cls, value: object) -> "ContentKind":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {"series": cls.TV, "show": cls.TV, "shows": cls.TV, "movies": cls.MOVIE}
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError as exc:
            raise ValueError(f"Unsupported content kind: {value!r}") from exc


class FilterSet(BaseModel):
    """Immutable combination of filters scoping a suggestion pool.

    Two filter sets compare equal when every field matches, which makes an
    instance usable directly as the pool cache key.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ContentKind = Field(
        default=ContentKind.MOVIE,
        validation_alias=AliasChoices("kind", "contentType", "content_type"),
    )
    genres: frozenset[int] = Field(default_factory=frozenset)
    year_from: int | None = Field(
        default=None,
        ge=1870,
        le=2200,
        validation_alias=AliasChoices("year_from", "yearFrom"),
    )
    year_to: int | None = Field(
        default=None,
        ge=1870,
        le=2200,
        validation_alias=AliasChoices("year_to", "yearTo"),
    )
    language: str | None = Field(
        default=None,
        validation_alias=AliasChoices("language", "originalLanguage"),
    )
    min_rating: float = Field(
        default=7.0,
        ge=0,
        le=10,
        validation_alias=AliasChoices("min_rating", "minRating"),
    )

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: object) -> ContentKind:
        return ContentKind.parse(value)

    @field_validator("genres", mode="before")
    @classmethod
    def _parse_genres(cls, value: object) -> frozenset[int]:
        return frozenset(parse_id_list(value))

    @field_validator("year_from", "year_to", mode="before")
    @classmethod
    def _parse_year(cls, value: object) -> int | None:
        return parse_optional_int(value)

    @field_validator("language", mode="before")
    @classmethod
    def _normalise_language(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip().lower()
        if not text or text == ANY_LANGUAGE:
            return None
        return text

    @model_validator(mode="after")
    def _check_year_range(self) -> "FilterSet":
        if (
            self.year_from is not None
            and self.year_to is not None
            and self.year_from > self.year_to
        ):
            raise ValueError("year_from must not be later than year_to")
        return self

    def describe(self) -> str:
        """Return a compact description used in log lines."""

        years = f"{self.year_from or '*'}-{self.year_to or '*'}"
        genres = ",".join(str(genre) for genre in sorted(self.genres)) or "*"
        return (
            f"{self.kind.value} genres={genres} years={years} "
            f"lang={self.language or ANY_LANGUAGE} rating>={self.min_rating:g}"
        )


class Genre(BaseModel):
    """A TMDB genre entry."""

    id: int
    name: str


class CatalogItem(BaseModel):
    """Normalized title returned by the catalog."""

    model_config = ConfigDict(frozen=True)

    id: int
    kind: ContentKind
    title: str
    original_title: str | None = None
    overview: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    release_date: date | None = None
    first_air_date: date | None = None
    genre_ids: tuple[int, ...] = ()
    original_language: str | None = None
    popularity: float = 0.0

    @property
    def air_date(self) -> date | None:
        if self.kind is ContentKind.MOVIE:
            return self.release_date
        return self.first_air_date

    @property
    def release_year(self) -> int | None:
        air_date = self.air_date
        return air_date.year if air_date else None

    def poster_url(self, base_url: str = IMAGE_BASE_URL) -> str | None:
        return build_image_url(self.poster_path, base_url, POSTER_SIZE)

    def backdrop_url(self, base_url: str = IMAGE_BASE_URL) -> str | None:
        return build_image_url(self.backdrop_path, base_url, BACKDROP_SIZE)

    def to_payload(self, image_base_url: str = IMAGE_BASE_URL) -> dict[str, Any]:
        """Return a JSON-ready representation including absolute image URLs."""

        payload = self.model_dump(mode="json")
        payload["year"] = self.release_year
        payload["poster"] = self.poster_url(image_base_url)
        payload["background"] = self.backdrop_url(image_base_url)
        return payload


class TitleDetails(CatalogItem):
    """Detailed view of a single title."""

    genres: list[Genre] = Field(default_factory=list)
    tagline: str | None = None
    status: str | None = None
    homepage: str | None = None
    runtime: int | None = None
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None
    series_type: str | None = None

    @property
    def is_miniseries(self) -> bool:
        """Whether the title is a limited series."""

        if self.kind is ContentKind.MOVIE:
            return False
        if self.series_type:
            return self.series_type.casefold() == "miniseries"
        return self.number_of_seasons == 1

    def to_payload(self, image_base_url: str = IMAGE_BASE_URL) -> dict[str, Any]:
        payload = super().to_payload(image_base_url)
        payload["is_miniseries"] = self.is_miniseries
        return payload


class CatalogPage(BaseModel):
    """A single page of discovery results."""

    page: int
    items: list[CatalogItem] = Field(default_factory=list)
    total_pages: int = 0
    total_results: int = 0


class _RawResult(BaseModel):
    """Fields shared by TMDB movie and tv result objects."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str | None = None
    name: str | None = None
    original_title: str | None = None
    original_name: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float = 0.0
    vote_count: int = 0
    genre_ids: list[int] = Field(default_factory=list)
    original_language: str | None = None
    popularity: float = 0.0

    @field_validator("vote_average", "vote_count", "popularity", mode="before")
    @classmethod
    def _zero_when_missing(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("genre_ids", mode="before")
    @classmethod
    def _empty_when_missing(cls, value: object) -> object:
        return [] if value is None else value

    def _common_fields(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "overview": self.overview or "",
            "poster_path": self.poster_path,
            "backdrop_path": self.backdrop_path,
            "vote_average": self.vote_average,
            "vote_count": self.vote_count,
            "genre_ids": tuple(self.genre_ids),
            "original_language": self.original_language,
            "popularity": self.popularity,
        }


class RawMovieResult(_RawResult):
    media: Literal["movie"] = "movie"
    release_date: str | None = None

    def to_item(self, kind: ContentKind = ContentKind.MOVIE) -> CatalogItem:
        return CatalogItem(
            kind=kind,
            title=self.title or self.name or "",
            original_title=self.original_title or self.original_name,
            release_date=parse_tmdb_date(self.release_date),
            **self._common_fields(),
        )


class RawTvResult(_RawResult):
    media: Literal["tv"] = "tv"
    first_air_date: str | None = None

    def to_item(self, kind: ContentKind = ContentKind.TV) -> CatalogItem:
        return CatalogItem(
            kind=kind,
            title=self.name or self.title or "",
            original_title=self.original_name or self.original_title,
            first_air_date=parse_tmdb_date(self.first_air_date),
            **self._common_fields(),
        )


RawResult = Annotated[Union[RawMovieResult, RawTvResult], Field(discriminator="media")]
RAW_RESULT_ADAPTER: TypeAdapter[RawMovieResult | RawTvResult] = TypeAdapter(RawResult)


def normalize_result(kind: ContentKind, payload: dict[str, Any]) -> CatalogItem:
    """Convert a raw TMDB result of either shape into a :class:`CatalogItem`."""

    raw = RAW_RESULT_ADAPTER.validate_python({**payload, "media": kind.endpoint})
    return raw.to_item(kind)


def normalize_details(kind: ContentKind, payload: dict[str, Any]) -> TitleDetails:
    """Convert a TMDB detail payload into :class:`TitleDetails`."""

    genres = [
        Genre.model_validate(entry)
        for entry in payload.get("genres") or []
        if isinstance(entry, dict)
    ]
    item = normalize_result(
        kind, {**payload, "genre_ids": [genre.id for genre in genres]}
    )
    return TitleDetails(
        **item.model_dump(),
        genres=genres,
        tagline=payload.get("tagline") or None,
        status=payload.get("status") or None,
        homepage=payload.get("homepage") or None,
        runtime=payload.get("runtime"),
        number_of_seasons=payload.get("number_of_seasons"),
        number_of_episodes=payload.get("number_of_episodes"),
        series_type=payload.get("type") if kind is not ContentKind.MOVIE else None,
    )
