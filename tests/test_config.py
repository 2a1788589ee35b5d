"""Tests for settings, categories and logging setup."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from douban_sync.categories import Category, Domain, domain_for_category, parse_category
from douban_sync.config import Settings, configure_logging
from douban_sync.errors import UnsupportedCategoryError


class TestSettings:
    def test_defaults(self) -> None:
        with patch.dict("os.environ", {}, clear=True):
            cfg = Settings()
        assert cfg.base_delay == 4.0
        assert cfg.random_delay == 4.0
        assert cfg.slow_mode_threshold == 200
        assert cfg.slow_delay == 10.0
        assert cfg.slow_random_delay == 5.0
        assert cfg.max_retries == 3
        assert cfg.list_page_size == 30
        assert cfg.batch_limit == 100

    def test_environment_overrides(self) -> None:
        env = {"DOUBAN_BASE_DELAY": "0.5", "DOUBAN_MAX_RETRIES": "5", "DOUBAN_LOG_LEVEL": "DEBUG"}
        with patch.dict("os.environ", env):
            cfg = Settings()
        assert cfg.base_delay == 0.5
        assert cfg.max_retries == 5
        assert cfg.log_level == "DEBUG"

    def test_configure_logging_uses_level(self) -> None:
        with patch("logging.basicConfig") as mock_config:
            configure_logging("debug")
        assert mock_config.call_args.kwargs["level"] == "DEBUG"


class TestCategories:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("books", Category.BOOKS),
            ("Movie", Category.MOVIES),
            ("tv", Category.TV),
            ("documentary", Category.DOCUMENTARY),
            (Category.TV, Category.TV),
        ],
    )
    def test_parse(self, value: object, expected: Category) -> None:
        assert parse_category(value) is expected

    @pytest.mark.parametrize("value", ["music", "", None, 3])
    def test_unsupported(self, value: object) -> None:
        with pytest.raises(UnsupportedCategoryError):
            parse_category(value)

    def test_unsupported_is_value_error(self) -> None:
        assert issubclass(UnsupportedCategoryError, ValueError)

    def test_domains(self) -> None:
        assert domain_for_category(Category.BOOKS) is Domain.BOOK
        assert domain_for_category(Category.TV) is Domain.MOVIE
        assert domain_for_category(None) is Domain.MOVIE
        assert Category.BOOKS.is_media is False
        assert Category.DOCUMENTARY.is_media is True
