"""Parsing and resolution of HTTP byte ranges (RFC 7233, sections 2.1 and 4.4).

Only the `<first>-<last>` and `<first>-` forms are understood. Anything the
grammar below does not accept is treated as if no Range header was sent, so
the client gets the whole artifact instead of an error.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

BYTES_UNIT = "bytes="

# Shared by every multipart/byteranges response; it only frames parts.
MULTIPART_BOUNDARY = "3d6b6a416f9b5"

# offsets are capped at 18 digits so they fit a signed 64-bit length
_RANGE_SET = re.compile(r"[0-9]{1,18}-[0-9]{0,18}(?:,[0-9]{1,18}-[0-9]{0,18})*")
_WHOLE_ARTIFACT = re.compile(r"0+-")


@dataclass(frozen=True)
class ResolvedRange:
    start: int
    end: int  # inclusive
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


@dataclass(frozen=True)
class RangeRequest:
    start: int
    end: int | None = None

    def resolve(self, length: int) -> ResolvedRange | None:
        """Clamp this range to an artifact of `length` bytes.

        Returns None when the range cannot be satisfied.
        """
        if self.start >= length:
            return None
        if self.end is None:
            return ResolvedRange(self.start, length - 1, length)
        if self.start > self.end:
            return None
        return ResolvedRange(self.start, min(self.end, length - 1), length)


def is_whole_artifact(spec: str) -> bool:
    """`0-` asks for every byte, which is just a plain download."""
    return _WHOLE_ARTIFACT.fullmatch(spec) is not None


def parse_byte_ranges(spec: str) -> list[RangeRequest]:
    """Parse a range set with the `bytes=` prefix already removed."""
    if is_whole_artifact(spec) or _RANGE_SET.fullmatch(spec) is None:
        return []
    ranges = []
    for unit in spec.split(","):
        start, end = unit.split("-")
        ranges.append(RangeRequest(start=int(start), end=int(end) if end else None))
    return ranges


def parse_range_header(header: str | None) -> list[RangeRequest]:
    if header is None or not header.startswith(BYTES_UNIT):
        return []
    return parse_byte_ranges(header[len(BYTES_UNIT) :])


def is_ranged_request(header: str | None) -> bool:
    return bool(parse_range_header(header))


def resolve_ranges(ranges: list[RangeRequest], length: int) -> list[ResolvedRange] | None:
    """Resolve every range, or return None if any one of them is unsatisfiable."""
    resolved = []
    for range in ranges:
        r = range.resolve(length)
        if r is None:
            return None
        resolved.append(r)
    return resolved
