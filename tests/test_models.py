from __future__ import annotations

from datetime import date

import pytest

from app.models import (
    CatalogItem,
    ContentKind,
    FilterSet,
    TitleDetails,
    normalize_result,
)


def test_filter_sets_compare_by_value() -> None:
    first = FilterSet(kind="movie", genres=[28, 12], year_from="2020", language="any")
    second = FilterSet.model_validate(
        {"contentType": "movie", "genres": "12,28", "yearFrom": 2020, "language": None}
    )

    assert first == second
    assert hash(first) == hash(second)
    assert first.language is None
    assert first.min_rating == 7.0


def test_any_single_field_change_breaks_equality() -> None:
    base = FilterSet(kind="tv", genres=[18], year_from=2000, year_to=2010, language="ko", min_rating=7)

    variants = [
        base.model_copy(update={"kind": ContentKind.MINISERIES}),
        base.model_copy(update={"genres": frozenset({18, 80})}),
        base.model_copy(update={"year_from": 2001}),
        base.model_copy(update={"year_to": None}),
        base.model_copy(update={"language": "ja"}),
        base.model_copy(update={"min_rating": 6.5}),
    ]

    assert all(variant != base for variant in variants)


def test_filter_set_is_immutable() -> None:
    filters = FilterSet()

    with pytest.raises(ValueError):
        filters.min_rating = 3  # type: ignore[misc]


def test_filter_set_parses_blank_years_and_series_alias() -> None:
    filters = FilterSet.model_validate(
        {"contentType": "series", "yearFrom": "", "yearTo": " ", "minRating": "8", "language": "PT"}
    )

    assert filters.kind is ContentKind.TV
    assert filters.year_from is None
    assert filters.year_to is None
    assert filters.min_rating == 8.0
    assert filters.language == "pt"


@pytest.mark.parametrize(
    "payload",
    [
        {"yearFrom": 2024, "yearTo": 2020},
        {"minRating": 11},
        {"minRating": -1},
        {"contentType": "podcast"},
        {"yearFrom": "twenty"},
    ],
)
def test_filter_set_rejects_invalid_values(payload: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        FilterSet.model_validate(payload)


def test_content_kind_endpoints() -> None:
    assert ContentKind.MOVIE.endpoint == "movie"
    assert ContentKind.TV.endpoint == "tv"
    assert ContentKind.MINISERIES.endpoint == "tv"
    assert ContentKind.MOVIE.date_field == "primary_release_date"
    assert ContentKind.MINISERIES.date_field == "first_air_date"


def test_catalog_item_payload_includes_image_urls() -> None:
    item = normalize_result(
        ContentKind.MOVIE,
        {
            "id": 10,
            "title": "Arrival",
            "poster_path": "/arrival.jpg",
            "backdrop_path": None,
            "release_date": "2016-11-11",
            "vote_average": None,
            "genre_ids": None,
        },
    )

    payload = item.to_payload()

    assert payload["poster"] == "https://image.tmdb.org/t/p/w500/arrival.jpg"
    assert payload["background"] is None
    assert payload["year"] == 2016
    assert payload["release_date"] == "2016-11-11"
    assert payload["kind"] == "movie"
    assert item.vote_average == 0.0
    assert item.genre_ids == ()


def test_series_item_uses_first_air_date_for_year() -> None:
    item = CatalogItem(
        id=3,
        kind=ContentKind.TV,
        title="Dark",
        release_date=date(1999, 1, 1),
        first_air_date=date(2017, 12, 1),
    )

    assert item.release_year == 2017


def test_title_details_miniseries_falls_back_to_season_count() -> None:
    details = TitleDetails(id=1, kind=ContentKind.TV, title="Chernobyl", number_of_seasons=1)
    movie = TitleDetails(id=2, kind=ContentKind.MOVIE, title="Heat", number_of_seasons=1)
    scripted = TitleDetails(
        id=3, kind=ContentKind.TV, title="Lost", series_type="Scripted", number_of_seasons=1
    )

    assert details.is_miniseries is True
    assert movie.is_miniseries is False
    assert scripted.is_miniseries is False
