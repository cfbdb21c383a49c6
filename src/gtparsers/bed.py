from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Tuple, TypeVar

from .errors import MalformedLineError
from .models import ChromInterval, CopyNumberMap
from .utils import chunked, iter_data_lines, open_textmaybe_gzip, parse_float, parse_int

logger = logging.getLogger(__name__)

T = TypeVar("T")

# UCSC header lines that may precede BED records
_HEADER_KEYWORDS = ("track", "browser")


def _iter_bed_fields(
    bed_path: str | Path,
    *,
    chrom: str,
    min_cols: int,
) -> Iterator[Tuple[int, str, List[str]]]:
    """Yield (line_no, line, fields) for BED data lines on ``chrom`` (or all if empty).

    Lines on other chromosomes are dropped before their columns are checked.
    """
    n_skipped = 0
    with open_textmaybe_gzip(bed_path, "rt") as fh:
        for line_no, line in iter_data_lines(fh):
            fields = line.split()
            if fields[0] in _HEADER_KEYWORDS:
                continue
            if chrom and fields[0] != chrom:
                n_skipped += 1
                continue
            if len(fields) < min_cols:
                raise MalformedLineError(
                    f"expected at least {min_cols} columns, found {len(fields)}",
                    path=bed_path,
                    line_no=line_no,
                    line=line,
                )
            yield line_no, line, fields
    if n_skipped:
        logger.debug("Skipped %d lines not on %s in %s", n_skipped, chrom, bed_path)


def _parse_field(
    convert: Callable[[str], T],
    value: str,
    what: str,
    *,
    bed_path: str | Path,
    line_no: int,
    line: str,
) -> T:
    try:
        return convert(value)
    except ValueError as e:
        raise MalformedLineError(
            f"{what}: {e}",
            path=bed_path,
            line_no=line_no,
            line=line,
        ) from None


def _interval_from_fields(
    fields: List[str], *, bed_path: str | Path, line_no: int, line: str
) -> ChromInterval:
    start = _parse_field(parse_int, fields[1], "start", bed_path=bed_path, line_no=line_no, line=line)
    end = _parse_field(parse_int, fields[2], "end", bed_path=bed_path, line_no=line_no, line=line)
    if start < 0 or end < start:
        raise MalformedLineError(
            f"invalid interval [{start}, {end})",
            path=bed_path,
            line_no=line_no,
            line=line,
        )
    return ChromInterval(fields[0], start, end)


def parse_bed(bed_path: str | Path, chrom: str = "") -> List[ChromInterval]:
    """Read the first three columns (chrom, start, end) of a BED/BEDgraph file.

    If ``chrom`` is given, only intervals on that chromosome are returned.
    Intervals come back in file order.
    """
    intervals: List[ChromInterval] = []
    for line_no, line, fields in _iter_bed_fields(bed_path, chrom=chrom, min_cols=3):
        intervals.append(_interval_from_fields(fields, bed_path=bed_path, line_no=line_no, line=line))
    logger.info("Parsed %d intervals from %s", len(intervals), bed_path)
    return intervals


def parse_bedgraph(bed_path: str | Path, chrom: str = "") -> List[Tuple[ChromInterval, float]]:
    """Like :func:`parse_bed`, but also return the numeric value in column 4."""
    out: List[Tuple[ChromInterval, float]] = []
    for line_no, line, fields in _iter_bed_fields(bed_path, chrom=chrom, min_cols=4):
        interval = _interval_from_fields(fields, bed_path=bed_path, line_no=line_no, line=line)
        value = _parse_field(parse_float, fields[3], "value", bed_path=bed_path, line_no=line_no, line=line)
        out.append((interval, value))
    logger.info("Parsed %d BEDgraph records from %s", len(out), bed_path)
    return out


def parse_cn_file(cn_calls_path: str | Path, chrom: str = "") -> CopyNumberMap:
    """Read a BEDgraph of copy number calls. Column 4 must be an integer.

    Duplicate or overlapping calls are all kept.
    """
    calls = CopyNumberMap()
    for line_no, line, fields in _iter_bed_fields(cn_calls_path, chrom=chrom, min_cols=4):
        interval = _interval_from_fields(fields, bed_path=cn_calls_path, line_no=line_no, line=line)
        cn = _parse_field(parse_int, fields[3], "copy number", bed_path=cn_calls_path, line_no=line_no, line=line)
        calls.add(interval, cn)
    logger.info("Parsed %d copy number calls from %s", len(calls), cn_calls_path)
    return calls


def merge_into_windows(intervals: List[ChromInterval], n_intervals_per_window: int) -> List[ChromInterval]:
    """Coalesce consecutive intervals (one chromosome, sorted) into windows of n intervals."""
    windows: List[ChromInterval] = []
    for group in chunked(intervals, n_intervals_per_window):
        windows.append(
            ChromInterval(
                group[0].chrom,
                min(ci.start for ci in group),
                max(ci.end for ci in group),
            )
        )
    return windows


def parse_and_merge_bed(bed_path: str | Path, n_intervals_per_window: int) -> Dict[str, List[ChromInterval]]:
    """Parse a BED file and merge its intervals into windows of ``n_intervals_per_window``.

    Returns a mapping chrom -> windows, with chromosomes in sorted order. Each
    chromosome's intervals are sorted by position before merging; the last
    window on a chromosome may hold fewer intervals.
    """
    if n_intervals_per_window < 1:
        raise ValueError(f"n_intervals_per_window must be >= 1, got {n_intervals_per_window}")

    by_chrom: Dict[str, List[ChromInterval]] = {}
    for ci in parse_bed(bed_path):
        by_chrom.setdefault(ci.chrom, []).append(ci)

    windows: Dict[str, List[ChromInterval]] = {}
    for chrom in sorted(by_chrom):
        lst = by_chrom[chrom]
        lst_sorted = sorted(lst)
        if lst_sorted != lst:
            logger.warning(
                "Intervals on %s in %s are not sorted by position; sorting before merging.",
                chrom,
                bed_path,
            )
        windows[chrom] = merge_into_windows(lst_sorted, n_intervals_per_window)

    logger.info(
        "Merged intervals from %s into %d windows on %d chromosomes",
        bed_path,
        sum(len(w) for w in windows.values()),
        len(windows),
    )
    return windows
