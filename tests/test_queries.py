from subs_wrapper.models import MediaMetadata
from subs_wrapper.queries import build_queries, normalize_query, strip_years


def test_normalize_query_collapses_separators():
    assert normalize_query("  Show:  Name / Part | Two ") == "Show Name Part Two"


def test_strip_years_only_removes_four_digit_years():
    assert strip_years("Blade Runner 2049 2017") == "Blade Runner"
    assert strip_years("Apollo 13 1995") == "Apollo 13"
    assert strip_years("Fahrenheit 451") == "Fahrenheit 451"


def test_build_queries_priority_order():
    meta = MediaMetadata(title="Show Name", year=2020, alternate_titles=("Show Name: Subtitle",))
    assert build_queries(meta) == [
        "Show Name",
        "Show Name 2020",
        "Show Name Subtitle",
        "Show Name Subtitle 2020",
    ]


def test_build_queries_alternates_before_alternate_years():
    meta = MediaMetadata(title="Film", year=1999, alternate_titles=("Alt One", "Alt Two"))
    assert build_queries(meta) == [
        "Film",
        "Film 1999",
        "Alt One",
        "Alt Two",
        "Alt One 1999",
        "Alt Two 1999",
    ]


def test_build_queries_appends_year_stripped_variants():
    meta = MediaMetadata(title="Blade Runner 2049", year=2017)
    assert build_queries(meta) == [
        "Blade Runner 2049",
        "Blade Runner 2049 2017",
        "Blade Runner",
    ]


def test_build_queries_without_year():
    assert build_queries(MediaMetadata(title="Example")) == ["Example"]


def test_build_queries_is_deterministic():
    meta = MediaMetadata(title="A: B", year=2001, alternate_titles=("A B", "C"))
    first = build_queries(meta)
    assert first == build_queries(meta)
    assert len(first) == len(set(first))


def test_build_queries_empty_metadata():
    assert build_queries(None) == []
    assert build_queries(MediaMetadata(title="  :: ")) == []
