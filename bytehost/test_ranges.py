import pytest

from bytehost.ranges import (
    RangeRequest,
    ResolvedRange,
    is_ranged_request,
    is_whole_artifact,
    parse_byte_ranges,
    parse_range_header,
    resolve_ranges,
)


@pytest.mark.parametrize(
    "byte_ranges, expected",
    [
        ("5-", True),
        ("1-99", True),
        ("0-100,200-300", True),
        ("0-100, 200-300", False),
        ("0/*", False),
        ("0-", False),
        ("0", False),
    ],
)
def test_is_ranged_request(byte_ranges: str, expected: bool) -> None:
    assert is_ranged_request(f"bytes={byte_ranges}") is expected


@pytest.mark.parametrize(
    "header",
    [
        None,
        "",
        "bytes=",
        "items=0-5",
        "0-5",
        "bytes=-500",
        "bytes= 0-5",
        "bytes=" + "1" * 5000 + "-",
        "bytes=0-" + "9" * 5000,
        "bytes=1234567890123456789-",
    ],
)
def test_not_a_range_request(header: str | None) -> None:
    assert parse_range_header(header) == []


def test_whole_artifact_only_for_a_lone_zero_start() -> None:
    assert is_whole_artifact("0-")
    assert is_whole_artifact("00-")
    assert not is_whole_artifact("0-,5-")
    assert not is_whole_artifact("0-10")
    assert not is_whole_artifact("10-")


def test_zero_start_inside_a_range_set_is_kept() -> None:
    assert parse_byte_ranges("0-,5-9") == [RangeRequest(0), RangeRequest(5, 9)]


def test_parse_preserves_request_order() -> None:
    assert parse_byte_ranges("500-599,0-9,100-") == [
        RangeRequest(500, 599),
        RangeRequest(0, 9),
        RangeRequest(100, None),
    ]


def test_resolve_clamps_end_to_artifact() -> None:
    assert RangeRequest(10, 1000).resolve(100) == ResolvedRange(10, 99, 100)
    assert RangeRequest(10).resolve(100) == ResolvedRange(10, 99, 100)
    assert RangeRequest(99, 99).resolve(100) == ResolvedRange(99, 99, 100)


def test_resolve_unsatisfiable() -> None:
    assert RangeRequest(100, 101).resolve(100) is None
    assert RangeRequest(100).resolve(100) is None
    assert RangeRequest(0).resolve(0) is None
    assert RangeRequest(50, 10).resolve(100) is None


def test_resolved_range_headers() -> None:
    r = ResolvedRange(100, 199, 5000)
    assert r.length == 100
    assert r.content_range == "bytes 100-199/5000"


def test_one_unsatisfiable_member_fails_the_set() -> None:
    ranges = parse_byte_ranges("0-4500,5010-5019")
    assert resolve_ranges(ranges, 5000) is None
    assert resolve_ranges(ranges, 6000) == [ResolvedRange(0, 4500, 6000), ResolvedRange(5010, 5019, 6000)]
