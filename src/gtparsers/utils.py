from __future__ import annotations

import gzip
import json
import logging
import os
import re
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Iterator, TextIO, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMMENT_PREFIX = "#"

_INT_RE = re.compile(r"[+-]?[0-9]+")


def get_env(name: str) -> str:
    """Return the value of an environment variable, or "" if it is not set."""
    try:
        return os.environ.get(name, "")
    except (TypeError, ValueError):
        # non-str or undecodable name
        return ""


def parse_int(s: str) -> int:
    """Strict decimal integer: optional sign and ASCII digits only (no ``1_000``)."""
    s = s.strip()
    if not _INT_RE.fullmatch(s):
        raise ValueError(f"invalid integer: {s!r}")
    return int(s)


def parse_float(s: str) -> float:
    """Like ``float()``, but without the underscore digit separators."""
    if "_" in s:
        raise ValueError(f"invalid number: {s!r}")
    return float(s)


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def iter_data_lines(
    handle: Iterable[str],
    *,
    comment_prefix: str = COMMENT_PREFIX,
) -> Iterator[Tuple[int, str]]:
    """Yield (1-based line number, line without trailing newline) for data lines.

    Blank lines and lines starting with ``comment_prefix`` are skipped.
    """
    for line_no, raw in enumerate(handle, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip() or line.startswith(comment_prefix):
            continue
        yield line_no, line


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True, default=_json_default)


def to_jsonable(obj: Any) -> Any:
    """Convert parsed records (dataclasses, enums, tuples) into JSON-friendly values."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: to_jsonable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    return obj


def _json_default(obj: Any) -> Any:
    out = to_jsonable(obj)
    if out is obj:
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return out


def chunked(iterable: Iterable[T], n: int) -> Iterator[list[T]]:
    chunk: list[T] = []
    for item in iterable:
        chunk.append(item)
        if len(chunk) >= n:
            yield chunk
            chunk = []
    if chunk:
        yield chunk
