"""Tests for the canonicalization & repair engine."""

from __future__ import annotations

import copy

import pytest

from douban_sync.categories import Category
from douban_sync.errors import UnsupportedCategoryError
from douban_sync.transform import (
    BookRecord,
    MovieRecord,
    TransformOptions,
    Transformer,
    TvRecord,
    transform,
)
from douban_sync.transform.mapping import join_list, resolve_path

_MOVIE_INFO = """\
<div id="info">
  <span class="pl">制片国家/地区:</span> 美国 语言: 英语<br/>
  <span class="pl">上映日期:</span> <span property="v:initialReleaseDate">1994-09-10(多伦多电影节)</span> / <span property="v:initialReleaseDate">1994-10-14(美国)</span><br/>
  <span class="pl">片长:</span> <span property="v:runtime">142分钟</span> / 120分03秒(导演剪辑版)<br/>
</div>
"""


class TestMappingHelpers:
    def test_resolve_nested_path(self) -> None:
        assert resolve_path({"rating": {"average": 9.7}}, "rating.average") == 9.7

    def test_resolve_broken_path(self) -> None:
        assert resolve_path({"rating": None}, "rating.average") is None
        assert resolve_path({"rating": "9.7"}, "rating.average") is None

    def test_join_list(self) -> None:
        assert join_list(["a"]) == "a"
        assert join_list(["a", None, "b"]) == "a / b"
        assert join_list([]) == ""


class TestScenarios:
    def test_shawshank_collapses_single_director(self) -> None:
        raw = {
            "title": "The Shawshank Redemption",
            "director": ["Frank Darabont"],
            "releaseDate": "1994-09-10(Toronto) / 1994-10-14(USA)",
        }
        result = transform(raw, "movies")

        assert isinstance(result.data, MovieRecord)
        assert result.data.director == "Frank Darabont"
        assert result.data.release_date == "1994-09-10(Toronto) / 1994-10-14(USA)"
        assert result.statistics.repaired_fields == 0

    def test_finished_reading_rejected_for_books(self) -> None:
        result = transform(
            {"subjectId": "1", "title": "Book", "myStatus": "finished reading"},
            Category.BOOKS,
            TransformOptions(strict_validation=True),
        )
        assert isinstance(result.data, BookRecord)
        assert result.data.my_status is None
        assert any("finished reading" in w for w in result.warnings)


class TestTransformer:
    def test_statistics(self) -> None:
        raw = {
            "subjectId": "1292052",
            "title": "肖申克的救赎",
            "directors": ["弗兰克·德拉邦特"],
            "unmapped": "dropped",
            "html": _MOVIE_INFO,
        }
        result = Transformer().transform(raw, "movies")
        stats = result.statistics
        assert stats.total_fields == 5
        assert stats.repaired_fields == 4
        assert stats.failed_fields == 0
        assert stats.transformed_fields == 7

    def test_repairs_from_fragment(self) -> None:
        raw = {"subjectId": "1", "title": "t", "duration": "142分钟", "html": _MOVIE_INFO}
        data = transform(raw, "movies").data
        assert data.duration == "142分钟 / 120分03秒(导演剪辑版)"
        assert data.release_date == "1994-09-10(多伦多电影节) / 1994-10-14(美国)"
        assert data.country == "美国"
        assert data.language == "英语"

    def test_repairs_disabled(self) -> None:
        raw = {"subjectId": "1", "title": "t", "duration": "142分钟", "html": _MOVIE_INFO}
        result = transform(raw, "movies", TransformOptions(enable_intelligent_repairs=False))
        assert result.data.duration == "142分钟"
        assert result.data.country is None
        assert result.statistics.repaired_fields == 0

    def test_nested_rating_and_user_fields(self) -> None:
        raw = {
            "subjectId": "1",
            "title": "t",
            "rating": {"average": 9.7, "numRaters": 10},
            "userStatus": "看过",
            "userRating": 5,
            "userTags": ["经典", "励志"],
            "readDate": "2023-05-01",
        }
        data = transform(raw, "movies").data
        assert data.douban_rating == 9.7
        assert data.my_status == "看过"
        assert data.my_rating == 5
        assert data.my_tags == "经典 / 励志"
        assert data.mark_date == "2023-05-01"

    def test_invalid_rating_and_date_become_null(self) -> None:
        raw = {"subjectId": "1", "title": "t", "myRating": 9, "markDate": "2023-02-30"}
        result = transform(raw, "movies")
        assert result.data.my_rating is None
        assert result.data.mark_date is None
        assert len(result.warnings) == 2
        assert result.statistics.failed_fields == 2

    def test_without_strict_validation_bad_values_do_not_raise(self) -> None:
        raw = {"subjectId": "1", "title": "t", "myRating": "great", "myStatus": "whatever"}
        result = transform(raw, "movies", TransformOptions(strict_validation=False))
        assert result.data.my_status == "whatever"
        assert result.data.my_rating is None
        assert any("myRating" in w for w in result.warnings)

    def test_book_repairs(self) -> None:
        raw = {
            "subjectId": "6082808",
            "title": "百年孤独",
            "authors": ["[哥伦比亚] 加西亚·马尔克斯"],
            "publishDate": "2011年6月",
            "isbn": "978-7-5442-5399-4",
            "pages": 360,
        }
        data = transform(raw, "books").data
        assert data.author == "[哥伦比亚] 加西亚·马尔克斯"
        assert data.publish_date == "2011-06"
        assert data.isbn == "9787544253994"
        assert data.pages == 360

    def test_tv_record(self) -> None:
        raw = {"subjectId": "1", "title": "t", "episodeCount": "20", "episodeDuration": "45分钟"}
        data = transform(raw, Category.TV).data
        assert isinstance(data, TvRecord)
        assert data.episode_count == 20

    def test_english_episode_runtime_not_used_as_duration(self) -> None:
        raw = {"subjectId": "1", "title": "t", "html": '<div id="info">Episode runtime: 45 min<br/></div>'}
        data = transform(raw, Category.TV).data
        assert data.duration is None

    def test_alias_dump(self) -> None:
        data = transform({"subjectId": "1", "title": "t", "doubanUrl": "u"}, "movies").data
        dumped = data.model_dump(by_alias=True)
        assert dumped["subjectId"] == "1"
        assert dumped["doubanUrl"] == "u"
        assert dumped["category"] == "movies"

    def test_missing_required_fields_warn(self) -> None:
        result = transform({"genre": "剧情"}, "movies")
        assert "Missing required field: subjectId" in result.warnings
        assert "Missing required field: title" in result.warnings
        assert result.statistics.failed_fields == 2

    def test_unsupported_category_raises(self) -> None:
        with pytest.raises(UnsupportedCategoryError):
            transform({"title": "t"}, "podcasts")


class TestEdgeCases:
    @pytest.mark.parametrize("raw", [None, {}, [], "not a mapping"])
    def test_empty_or_invalid_input(self, raw: object) -> None:
        result = transform(raw, "movies")
        assert isinstance(result.data, MovieRecord)
        assert result.data.title is None
        assert result.warnings

    def test_none_leaves(self) -> None:
        raw = {"subjectId": "1", "title": None, "rating": {"average": None}, "director": [None]}
        result = transform(raw, "movies")
        assert result.data.douban_rating is None
        assert result.data.director == ""

    def test_self_referential_input(self) -> None:
        raw: dict = {"subjectId": "1", "title": "loop"}
        raw["self"] = raw
        result = transform(raw, "movies", TransformOptions(preserve_raw_data=True))
        assert result.data.title == "loop"
        assert result.raw_data is raw

    def test_adversarial_strings_pass_through(self) -> None:
        payload = "<script>alert('x')</script> & \"quotes\""
        result = transform({"subjectId": "1", "title": payload, "summary": payload}, "movies")
        assert result.data.title == payload
        assert result.data.summary == payload

    def test_large_text_not_truncated(self) -> None:
        summary = "长" * 200_000
        result = transform({"subjectId": "1", "title": "t", "summary": summary}, "movies")
        assert len(result.data.summary) == 200_000

    def test_unconvertible_value_warns(self) -> None:
        result = transform({"subjectId": "1", "title": {"zh": "t"}}, "movies")
        assert result.data.title is None
        assert any("title" in w for w in result.warnings)

    def test_preserve_raw_data_round_trip(self) -> None:
        raw = {"subjectId": "1", "title": "t", "directors": ["a", "b"], "html": _MOVIE_INFO}
        snapshot = copy.deepcopy(raw)
        result = transform(raw, "movies", TransformOptions(preserve_raw_data=True))
        assert result.raw_data == snapshot
        assert raw == snapshot

    def test_raw_data_absent_by_default(self) -> None:
        assert transform({"subjectId": "1", "title": "t"}, "movies").raw_data is None
