from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True, order=True)
class ChromInterval:
    """A genomic interval.

    Coordinates are 0-based half-open, as in BED. Instances order by chrom
    (lexicographic), then start, then end.

    Attributes
    ----------
    chrom:
        Contig name as present in the input file.
    start:
        0-based start offset.
    end:
        Exclusive end offset.
    """

    chrom: str
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def __str__(self) -> str:
        return f"{self.chrom}:{self.start}-{self.end}"


class CopyNumberMap:
    """Multi-valued mapping of ChromInterval -> integer copy number.

    Duplicate and overlapping intervals are kept as separate entries. Iteration
    is ordered by interval; entries sharing an interval keep insertion order.
    """

    def __init__(self) -> None:
        self._keys: List[ChromInterval] = []
        self._values: List[int] = []

    def add(self, interval: ChromInterval, copy_number: int) -> None:
        idx = bisect.bisect_right(self._keys, interval)
        self._keys.insert(idx, interval)
        self._values.insert(idx, copy_number)

    def get_all(self, interval: ChromInterval) -> List[int]:
        lo = bisect.bisect_left(self._keys, interval)
        hi = bisect.bisect_right(self._keys, interval)
        return self._values[lo:hi]

    def items(self) -> Iterator[Tuple[ChromInterval, int]]:
        return iter(zip(self._keys, self._values))

    def intervals(self) -> List[ChromInterval]:
        out: List[ChromInterval] = []
        for k in self._keys:
            if not out or out[-1] != k:
                out.append(k)
        return out

    def values(self) -> List[int]:
        return list(self._values)

    def __contains__(self, interval: object) -> bool:
        if not isinstance(interval, ChromInterval):
            return False
        idx = bisect.bisect_left(self._keys, interval)
        return idx < len(self._keys) and self._keys[idx] == interval

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[Tuple[ChromInterval, int]]:
        return self.items()

    def __repr__(self) -> str:
        return f"CopyNumberMap({len(self)} calls)"


class Genotype(str, Enum):
    HET = "het"
    HOM_ALT = "hom_alt"


class VCFDialect(str, Enum):
    """Variant caller output styles understood by the VCF reader."""

    GATK = "gatk"
    SAMTOOLS = "samtools"


@dataclass
class VariantInfo:
    """One variant parsed from a VCF.

    ``in_1kg`` is the only field expected to change after parsing; it is set
    by :func:`gtparsers.onekg.set_1kg_flags`.
    """

    chrom: str
    pos: int  # 1-based, as in VCF
    ref: str
    alt: str
    genotype: Genotype
    in_dbsnp: bool
    in_1kg: bool = False
    variant_id: str = "."
    qual: Optional[float] = None
    depth: Optional[int] = None
    dialect: VCFDialect = VCFDialect.GATK

    @property
    def tag(self) -> str:
        return variant_tag(self.chrom, self.pos, self.ref, self.alt)


def variant_tag(chrom: str, pos: int, ref: str, alt: str) -> str:
    """Composite key used for 1000 Genomes lookups: <chrom>_<pos>_<ref>_<alt>."""
    return f"{chrom}_{pos}_{ref}_{alt}"


class TruthValue(str, Enum):
    """Three-valued ground truth for simulated fragments."""

    TRUE = "true"
    FALSE = "false"
    UNKNOWN = "unknown"

    @classmethod
    def from_token(cls, token: str) -> "TruthValue":
        t = token.strip().lower()
        if t in ("1", "t", "true"):
            return cls.TRUE
        if t in ("0", "f", "false"):
            return cls.FALSE
        if t in ("?", "-", ".", "unknown"):
            return cls.UNKNOWN
        raise ValueError(f"Not a truth value: {token!r}")


@dataclass(frozen=True)
class SimHapMatrix:
    """Contents of a simulated HapMatrix file. Per-fragment lists are index-aligned."""

    n_clones: int
    n_loci: int
    frag_size: int
    frag_data: List[str]
    frag_offsets: List[int]
    frag_truth: List[TruthValue]
    loci_truth: str


@dataclass(frozen=True)
class RealHapMatrix:
    """Contents of a real HapMatrix file. Per-clone lists are index-aligned."""

    n_frags: int
    n_loci: int
    var_calls: Dict[str, List[Tuple[int, bool]]] = field(default_factory=dict)
    clone_calls: List[Dict[int, str]] = field(default_factory=list)
    clone_intervals: List[ChromInterval] = field(default_factory=list)
    clone_qscores: List[float] = field(default_factory=list)
