import logging
from datetime import datetime

import pytest

from tests._support.factories import make_entry, make_marker, make_meta
from media_toc.core.config import TocConfig
from media_toc.toc import (
    Episode,
    Part,
    RawEntry,
    TocContractError,
    TocNormalizer,
    normalize_toc,
    scrape_toc,
)


def combis(contents):
    return [c.combi_index for c in contents]


def assert_combi_formula(contents):
    for content in contents:
        assert content.combi_index == float(f"{content.total_index}.{content.partial_index or 0}")
        for episode in getattr(content, "episodes", []):
            assert episode.combi_index == float(f"{episode.total_index}.{episode.partial_index or 0}")


# ============================================================================
# 基本场景
# ============================================================================

def test_plain_chapters():
    result = normalize_toc([make_entry(f"Chapter {i}") for i in range(1, 5)])
    assert all(isinstance(e, Episode) for e in result)
    assert combis(result) == [1.0, 2.0, 3.0, 4.0]
    assert [e.total_index for e in result] == [1, 2, 3, 4]
    assert all(e.partial_index is None for e in result)


def test_mixed_chapter_notations():
    titles = ["Ch. 1 - X", "C2: Y", "2.5: Y", "Chapter. 3 - Z", "c4 - W Part 1", "4 - W Part 2"]
    result = normalize_toc([make_entry(t) for t in titles])
    assert combis(result) == [1.0, 2.0, 2.5, 3.0, 4.1, 4.2]
    assert (result[2].total_index, result[2].partial_index) == (2, 5)
    assert [e.title for e in result] == ["X", "Y", "Y", "Z", "W", "W"]
    assert_combi_formula(result)


def _ongoing_stream(finished, last_chapter="Chapter 4"):
    return [
        make_meta(finished=finished),
        make_entry("Intermission: Before"),
        make_entry("Intermission: Dawn"),
        make_entry("Chapter 1"),
        make_entry("Chapter 2"),
        make_entry("Chapter 3"),
        make_entry(last_chapter),
        make_entry("Afterword"),
        make_entry("Author's Note"),
    ]


def test_leading_orphans_and_ongoing_series():
    result = normalize_toc(_ongoing_stream(finished=None))
    assert combis(result) == [0.1, 0.2, 1.0, 2.0, 3.0, 4.0]
    assert [e.title for e in result[:2]] == ["Intermission: Before", "Intermission: Dawn"]
    assert all(e.total_index == 0 for e in result[:2])


@pytest.mark.parametrize("finished", [None, False])
def test_trailing_orphans_dropped_unless_finished(finished):
    result = normalize_toc(_ongoing_stream(finished=finished))
    assert "Afterword" not in [e.title for e in result]


def test_finished_series_keeps_trailing_orphans():
    result = normalize_toc(_ongoing_stream(finished=True))
    assert combis(result)[-2:] == [4.101, 4.102]
    assert [e.title for e in result[-2:]] == ["Afterword", "Author's Note"]


def test_finished_series_trailing_orphans_after_partial_anchor():
    result = normalize_toc(_ongoing_stream(finished=True, last_chapter="Chapter 4 Part 2"))
    assert combis(result)[-3:] == [4.2, 4.301, 4.302]


def test_boundary_markers_make_parts():
    result = normalize_toc([
        make_marker("Volume 2"), make_entry("Chapter 3"), make_entry("Chapter 4"),
        make_marker("Volume 1"), make_entry("Chapter 1"), make_entry("Chapter 2"),
    ])
    assert all(isinstance(p, Part) for p in result)
    assert [p.total_index for p in result] == [2, 1]
    assert [p.combi_index for p in result] == [2.0, 1.0]
    assert all(p.partial_index is None for p in result)
    assert [combis(p.episodes) for p in result] == [[3.0, 4.0], [1.0, 2.0]]


def test_descending_toc_with_trailing_markers():
    result = normalize_toc([
        make_entry("Chapter 4"), make_entry("Chapter 3"), make_marker("Volume 2"),
        make_entry("Chapter 2"), make_entry("Chapter 1"), make_marker("Volume 1"),
    ])
    assert [p.total_index for p in result] == [2, 1]
    assert [combis(p.episodes) for p in result] == [[4.0, 3.0], [2.0, 1.0]]


# ============================================================================
# 性质
# ============================================================================

def test_range_expands_to_siblings():
    entry = make_entry("C4-7 - Battle", locked=True)
    result = normalize_toc([entry])
    assert [e.total_index for e in result] == [4, 5, 6, 7]
    assert all(e.partial_index is None for e in result)
    assert all(e.title == "Battle" for e in result)
    assert all(e.url == entry.url and e.locked for e in result)


def test_descending_input_keeps_relative_order():
    titles = ["Chapter 5", "Chapter 4", "Side Story", "Chapter 3", "C1-2"]
    result = normalize_toc([make_entry(t) for t in titles])
    assert combis(result) == [5.0, 4.0, 3.101, 3.0, 2.0, 1.0]
    assert_combi_formula(result)


def test_output_is_homogeneous():
    result = normalize_toc([
        make_entry("Prologue"),
        make_entry("Vol. 1 Chapter 1"),
        make_entry("Chapter 2"),
        make_entry("Vol. 2 Chapter 1"),
        make_entry("Interlude"),
    ])
    assert all(isinstance(p, Part) for p in result)
    assert [p.total_index for p in result] == [1, 2]
    assert [e.title for e in result[0].episodes] == ["Prologue", "", ""]
    assert combis(result[0].episodes) == [0.1, 1.0, 2.0]
    # 未完结，末尾孤儿被丢弃
    assert combis(result[1].episodes) == [1.0]
    assert_combi_formula(result)


def test_volume_title_becomes_part_title():
    result = normalize_toc([
        make_entry("Vol. 1: Dawn - Chapter 1 - Hello"),
        make_entry("Dawn Interlude"),
        make_entry("Vol. 1: Dawn - Chapter 2"),
    ])
    part = result[0]
    assert part.title == "Dawn"
    assert [e.title for e in part.episodes] == ["Hello", "Interlude", ""]
    assert combis(part.episodes) == [1.0, 1.101, 2.0]


def test_sentinels_produce_no_output():
    result = normalize_toc([
        make_entry("Chapter 1"),
        make_entry("Chapter DELETED"),
        make_entry("C9-3"),
        make_entry("Chapter 2"),
    ])
    assert combis(result) == [1.0, 2.0]


def test_entry_fields_carried_over():
    date = datetime(2023, 5, 6, 7, 8, 9)
    entry = make_entry("Chapter 1 - Start", url="https://example.com/c1", release_date=date, locked=True)
    (episode,) = normalize_toc([entry])
    assert episode.url == "https://example.com/c1"
    assert episode.release_date == date
    assert episode.locked is True


def test_missing_release_date_stays_empty():
    (episode,) = normalize_toc([RawEntry(title="Chapter 1", url="https://example.com/1")])
    assert episode.release_date is None


def test_empty_input():
    assert normalize_toc([]) == []
    assert normalize_toc([make_meta()]) == []


# ============================================================================
# 作品名前缀与配置
# ============================================================================

def test_series_prefix_is_stripped():
    result = normalize_toc([
        make_meta("I am a cool Book"),
        make_entry("I am a cool Book: Chapter 1 - One"),
        make_entry("I am a cool Book Chapter 2"),
    ])
    assert combis(result) == [1.0, 2.0]
    assert result[0].title == "One"


def test_series_prefix_kept_when_disabled():
    config = TocConfig(strip_series_prefix=False)
    result = normalize_toc([
        make_meta("I am a cool Book"),
        make_entry("I am a cool Book: Chapter 1"),
    ], config=config)
    assert combis(result) == [0.1]
    assert result[0].title == "I am a cool Book: Chapter 1"


def test_custom_invalid_markers():
    config = TocConfig(invalid_markers=["REMOVED"])
    result = normalize_toc([make_entry("Chapter 1"), make_entry("Chapter REMOVED"), make_entry("Chapter 2")], config=config)
    assert combis(result) == [1.0, 2.0]


# ============================================================================
# 输入约定
# ============================================================================

def test_dict_input_with_camel_case_keys():
    result = normalize_toc([
        {"title": "Cool", "mediumType": 1, "end": True},
        {"title": "Chapter 1", "url": "https://example.com/1", "releaseDate": "2024-01-02T00:00:00"},
        {"title": "Epilogue", "url": "https://example.com/e", "release_date": "2024-01-03T00:00:00"},
    ])
    assert combis(result) == [1.0, 1.101]
    assert result[0].release_date == datetime(2024, 1, 2)


def test_output_serializes_with_camel_case_aliases():
    (episode,) = normalize_toc([make_entry("Chapter 2.5")])
    data = episode.model_dump(by_alias=True)
    assert data["totalIndex"] == 2
    assert data["partialIndex"] == 5
    assert data["combiIndex"] == 2.5


def test_second_series_meta_is_rejected():
    with pytest.raises(TocContractError):
        normalize_toc([make_meta(), make_meta()])


def test_series_meta_must_come_first():
    with pytest.raises(TocContractError):
        normalize_toc([make_entry("Chapter 1"), make_meta()])


@pytest.mark.parametrize("piece", [5, "Chapter 1", {"url": "https://example.com"}])
def test_unknown_items_are_rejected(piece):
    with pytest.raises(TocContractError):
        normalize_toc([piece])


def test_contract_error_is_value_error():
    assert issubclass(TocContractError, ValueError)


def test_normalizer_logs_summary(caplog):
    normalizer = TocNormalizer()
    normalizer.feed(make_meta("Cool"))
    for title in ["Chapter 1", "Chapter DELETED", "Chapter 2", "Afterword"]:
        normalizer.feed(make_entry(title))
    with caplog.at_level(logging.INFO, logger="media_toc.toc.engine"):
        result = normalizer.finish()
    assert len(result) == 2
    assert "输入 4 条" in caplog.text
    assert "丢弃 2 条" in caplog.text


# ============================================================================
# 异步来源
# ============================================================================

@pytest.mark.asyncio
async def test_scrape_toc_consumes_async_stream():
    async def source():
        yield make_meta(finished=True)
        yield make_entry("Prologue")
        yield make_entry("Chapter 1")
        yield make_entry("Chapter 2")

    result = await scrape_toc(source())
    assert combis(result) == [0.1, 1.0, 2.0]


@pytest.mark.asyncio
async def test_scrape_toc_raises_on_contract_violation():
    async def source():
        yield make_entry("Chapter 1")
        yield make_meta()

    with pytest.raises(TocContractError):
        await scrape_toc(source())


# ============================================================================
# 卷标记、标题与分段的回归场景
# ============================================================================

def test_bare_sentinel_entries_are_dropped():
    result = normalize_toc([make_entry("Chapter 1"), make_entry("DELETED"), make_entry("SPAM"), make_entry("Chapter 2")])
    assert combis(result) == [1.0, 2.0]


def test_prologue_before_first_volume_marker():
    result = normalize_toc([
        make_entry("Prologue"),
        make_marker("Volume 1"), make_entry("Chapter 1"), make_entry("Chapter 2"),
        make_marker("Volume 2"), make_entry("Chapter 3"), make_entry("Chapter 4"),
    ])
    assert [(p.total_index, combis(p.episodes)) for p in result] == [
        (1, [0.1, 1.0, 2.0]),
        (2, [3.0, 4.0]),
    ]


def test_repeated_volume_marker_yields_one_part():
    result = normalize_toc([make_entry("Vol. 1 Chapter 1"), make_marker("Volume 1"), make_entry("Chapter 2")])
    assert [p.total_index for p in result] == [1]
    assert combis(result[0].episodes) == [1.0, 2.0]


def test_part_title_only_stripped_at_word_boundary():
    result = normalize_toc([
        make_entry("Vol. 1: Dawn - Chapter 1 - Dawning Light"),
        make_entry("Vol. 1: Dawn - Chapter 2"),
        make_entry("Dawn: Interlude"),
        make_entry("Vol. 1: Dawn - Chapter 3"),
    ])
    assert [e.title for e in result[0].episodes] == ["Dawning Light", "", "Interlude", ""]


def test_part_count_fills_unmarked_siblings():
    titles = ["Chapter 5 - A", "Chapter 5 - A [2/3]", "Chapter 5 - A", "Chapter 6"]
    result = normalize_toc([make_entry(t) for t in titles])
    assert combis(result) == [5.1, 5.2, 5.3, 6.0]
    assert len(set(combis(result))) == len(result)
