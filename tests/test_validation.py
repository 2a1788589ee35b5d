"""Tests for the strict field validators."""

from __future__ import annotations

import pytest

from douban_sync.categories import Category
from douban_sync.transform.validation import (
    BOOK_STATUSES,
    MEDIA_STATUSES,
    validate_datetime_field,
    validate_rating_field,
    validate_select_field,
)


class TestValidateSelectField:
    @pytest.mark.parametrize("label", BOOK_STATUSES)
    def test_book_display_labels_pass(self, label: str) -> None:
        warnings: list[str] = []
        assert validate_select_field(label, "myStatus", Category.BOOKS, warnings) == label
        assert warnings == []

    @pytest.mark.parametrize(
        "alias, expected",
        [
            ("wish", "想读"),
            ("do", "在读"),
            ("collect", "读过"),
            ("Want to read", "想读"),
            ("reading", "在读"),
            ("read", "读过"),
            ("讀過", "读过"),
        ],
    )
    def test_book_aliases(self, alias: str, expected: str) -> None:
        assert validate_select_field(alias, "myStatus", Category.BOOKS, []) == expected

    @pytest.mark.parametrize(
        "alias, expected",
        [("watched", "看过"), ("in-progress", "在看"), ("wish", "想看"), ("看過", "看过")],
    )
    def test_media_aliases(self, alias: str, expected: str) -> None:
        for category in (Category.MOVIES, Category.TV, Category.DOCUMENTARY):
            assert validate_select_field(alias, "myStatus", category, []) == expected

    def test_finished_reading_is_rejected(self) -> None:
        warnings: list[str] = []
        assert validate_select_field("finished reading", "myStatus", Category.BOOKS, warnings) is None
        assert len(warnings) == 1
        assert "finished reading" in warnings[0]

    def test_book_label_rejected_for_movies(self) -> None:
        warnings: list[str] = []
        assert validate_select_field("读过", "myStatus", Category.MOVIES, warnings) is None
        assert warnings

    def test_non_string_rejected(self) -> None:
        warnings: list[str] = []
        assert validate_select_field(3, "myStatus", Category.MOVIES, warnings) is None
        assert warnings

    def test_empty_is_absent_not_invalid(self) -> None:
        warnings: list[str] = []
        assert validate_select_field("", "myStatus", Category.BOOKS, warnings) is None
        assert validate_select_field(None, "myStatus", Category.BOOKS, warnings) is None
        assert warnings == []

    @pytest.mark.parametrize(
        "value", ["wish", "读过", "watched", "finished reading", None, "", 7, "看過"]
    )
    def test_idempotent(self, value: object) -> None:
        for category in Category:
            once = validate_select_field(value, "myStatus", category, [])
            twice = validate_select_field(once, "myStatus", category, [])
            assert once == twice

    def test_vocabularies(self) -> None:
        assert MEDIA_STATUSES == ("想看", "在看", "看过")


class TestValidateRatingField:
    @pytest.mark.parametrize("value, expected", [(1, 1), (5, 5), (3.0, 3), ("4", 4), (" 2 ", 2)])
    def test_accepts(self, value: object, expected: int) -> None:
        warnings: list[str] = []
        assert validate_rating_field(value, warnings) == expected
        assert warnings == []

    @pytest.mark.parametrize(
        "value", [0, 6, -1, 4.5, "five", "10", True, float("nan"), float("inf"), [], {}, object()]
    )
    def test_rejects(self, value: object) -> None:
        warnings: list[str] = []
        assert validate_rating_field(value, warnings) is None
        assert len(warnings) == 1

    def test_none_is_absent(self) -> None:
        warnings: list[str] = []
        assert validate_rating_field(None, warnings) is None
        assert warnings == []


class TestValidateDatetimeField:
    def test_accepts_calendar_date(self) -> None:
        assert validate_datetime_field("2024-02-29", []) == "2024-02-29"

    @pytest.mark.parametrize(
        "value", ["2023-02-29", "2023-13-01", "2023-5-1", "2023/05/01", "yesterday", 20230501]
    )
    def test_rejects(self, value: object) -> None:
        warnings: list[str] = []
        assert validate_datetime_field(value, warnings) is None
        assert len(warnings) == 1
