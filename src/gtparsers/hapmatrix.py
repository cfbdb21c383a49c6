"""Readers for the HapMatrix clone-call formats.

Simulated matrices (written by the simulation script) look like::

    <n_clones>
    <n_loci>
    <frag_size>
    <loci_truth>              one character per locus
    <offset> <data> <truth>   one row per clone

Real matrices (written by the VCF-to-matrix script) look like::

    <n_frags>
    <n_loci>
    <locus> <variant_tag> <0|1>                 one row per locus
    <chrom> <start> <end> <qscore> <calls>      one row per clone

where ``calls`` is a comma-separated list of ``locus:call`` tokens, or ``.``
for a clone that covers no loci. Blank lines and ``#`` comments are ignored in
both formats.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, List, Tuple

from .errors import DimensionMismatchError, MalformedLineError
from .models import ChromInterval, RealHapMatrix, SimHapMatrix, TruthValue
from .utils import iter_data_lines, open_textmaybe_gzip, parse_float, parse_int

logger = logging.getLogger(__name__)


class _RowReader:
    """Hands out data lines one at a time, tracking position for error messages."""

    def __init__(self, path: str | Path, lines: List[Tuple[int, str]]) -> None:
        self.path = path
        self._lines = lines
        self._idx = 0

    def remaining(self) -> int:
        return len(self._lines) - self._idx

    def next_row(self, what: str) -> Tuple[int, str]:
        if self._idx >= len(self._lines):
            raise DimensionMismatchError(f"file ended while reading {what}", path=self.path)
        row = self._lines[self._idx]
        self._idx += 1
        return row

    def rows(self, n: int, what: str) -> Iterator[Tuple[int, str]]:
        if self.remaining() < n:
            raise DimensionMismatchError(
                f"header declares {n} {what} but only {self.remaining()} rows remain",
                path=self.path,
            )
        for _ in range(n):
            yield self.next_row(what)

    def header_int(self, what: str) -> int:
        line_no, line = self.next_row(what)
        try:
            value = parse_int(line)
        except ValueError:
            raise MalformedLineError(
                f"{what} must be an integer", path=self.path, line_no=line_no, line=line
            ) from None
        if value < 0:
            raise MalformedLineError(f"{what} must be >= 0", path=self.path, line_no=line_no, line=line)
        return value

    def expect_end(self, n_declared: int, what: str) -> None:
        if self.remaining():
            raise DimensionMismatchError(
                f"header declares {n_declared} {what} but {n_declared + self.remaining()} rows are present",
                path=self.path,
            )


def _read_rows(matrix_path: str | Path) -> _RowReader:
    with open_textmaybe_gzip(matrix_path, "rt") as fh:
        lines = list(iter_data_lines(fh))
    return _RowReader(matrix_path, lines)


def _split_row(reader: _RowReader, line_no: int, line: str, n_fields: int) -> List[str]:
    fields = line.split()
    if len(fields) != n_fields:
        raise MalformedLineError(
            f"expected {n_fields} fields, found {len(fields)}",
            path=reader.path,
            line_no=line_no,
            line=line,
        )
    return fields


def parse_sim_hap_matrix(matrix_path: str | Path) -> SimHapMatrix:
    """Parse a HapMatrix of simulated clone-call data."""
    reader = _read_rows(matrix_path)
    n_clones = reader.header_int("clone count")
    n_loci = reader.header_int("locus count")
    frag_size = reader.header_int("fragment size")

    # with no loci the truth line is empty, and blank lines are not data rows
    loci_truth = ""
    if n_loci:
        line_no, loci_truth = reader.next_row("loci truth")
        loci_truth = loci_truth.strip()
    if len(loci_truth) != n_loci:
        raise DimensionMismatchError(
            f"loci truth has {len(loci_truth)} characters but header declares {n_loci} loci",
            path=matrix_path,
            line_no=line_no,
        )
    frag_data: List[str] = []
    frag_offsets: List[int] = []
    frag_truth: List[TruthValue] = []
    for line_no, line in reader.rows(n_clones, "clones"):
        offset_s, data, truth_s = _split_row(reader, line_no, line, 3)
        try:
            offset = parse_int(offset_s)
            truth = TruthValue.from_token(truth_s)
        except ValueError as e:
            raise MalformedLineError(str(e), path=matrix_path, line_no=line_no, line=line) from None
        if len(data) != frag_size:
            raise MalformedLineError(
                f"fragment data has {len(data)} characters, expected {frag_size}",
                path=matrix_path,
                line_no=line_no,
                line=line,
            )
        if offset < 0 or offset + frag_size > n_loci:
            raise MalformedLineError(
                f"fragment offset {offset} places the fragment outside {n_loci} loci",
                path=matrix_path,
                line_no=line_no,
                line=line,
            )
        frag_offsets.append(offset)
        frag_data.append(data)
        frag_truth.append(truth)
    reader.expect_end(n_clones, "clones")

    n_unknown = sum(1 for t in frag_truth if t is TruthValue.UNKNOWN)
    logger.info(
        "Parsed simulated HapMatrix %s: %d clones, %d loci, fragment size %d (%d with unknown truth)",
        matrix_path,
        n_clones,
        n_loci,
        frag_size,
        n_unknown,
    )
    return SimHapMatrix(
        n_clones=n_clones,
        n_loci=n_loci,
        frag_size=frag_size,
        frag_data=frag_data,
        frag_offsets=frag_offsets,
        frag_truth=frag_truth,
        loci_truth=loci_truth,
    )


def _parse_locus(token: str, n_loci: int) -> int:
    locus = parse_int(token)
    if not 0 <= locus < n_loci:
        raise ValueError(f"locus index {locus} outside [0, {n_loci})")
    return locus


def _parse_clone_calls(token: str, n_loci: int) -> Dict[int, str]:
    calls: Dict[int, str] = {}
    if token == ".":
        return calls
    for item in token.split(","):
        locus_s, sep, call = item.partition(":")
        if not sep or not call:
            raise ValueError(f"clone call {item!r} is not of the form locus:call")
        calls[_parse_locus(locus_s, n_loci)] = call
    return calls


def parse_real_hap_matrix(matrix_path: str | Path) -> RealHapMatrix:
    """Parse a HapMatrix of real clone-call data."""
    reader = _read_rows(matrix_path)
    n_frags = reader.header_int("fragment count")
    n_loci = reader.header_int("locus count")

    var_calls: Dict[str, List[Tuple[int, bool]]] = {}
    for line_no, line in reader.rows(n_loci, "loci"):
        locus_s, tag, call = _split_row(reader, line_no, line, 3)
        try:
            locus = _parse_locus(locus_s, n_loci)
            if call not in ("0", "1"):
                raise ValueError(f"variant call must be 0 or 1, got {call!r}")
        except ValueError as e:
            raise MalformedLineError(str(e), path=matrix_path, line_no=line_no, line=line) from None
        var_calls.setdefault(tag, []).append((locus, call == "1"))

    clone_calls: List[Dict[int, str]] = []
    clone_intervals: List[ChromInterval] = []
    clone_qscores: List[float] = []
    for line_no, line in reader.rows(n_frags, "clones"):
        chrom, start_s, end_s, qscore_s, calls_s = _split_row(reader, line_no, line, 5)
        try:
            start, end = parse_int(start_s), parse_int(end_s)
            if start < 0 or end < start:
                raise ValueError(f"invalid clone interval [{start}, {end})")
            qscore = parse_float(qscore_s)
            calls = _parse_clone_calls(calls_s, n_loci)
        except ValueError as e:
            raise MalformedLineError(str(e), path=matrix_path, line_no=line_no, line=line) from None
        clone_intervals.append(ChromInterval(chrom, start, end))
        clone_qscores.append(qscore)
        clone_calls.append(calls)
    reader.expect_end(n_frags, "clones")

    logger.info(
        "Parsed real HapMatrix %s: %d clones, %d loci, %d variant tags",
        matrix_path,
        n_frags,
        n_loci,
        len(var_calls),
    )
    return RealHapMatrix(
        n_frags=n_frags,
        n_loci=n_loci,
        var_calls=var_calls,
        clone_calls=clone_calls,
        clone_intervals=clone_intervals,
        clone_qscores=clone_qscores,
    )
