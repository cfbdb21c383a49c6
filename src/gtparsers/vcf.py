from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .errors import MalformedLineError, PatternMismatchError
from .models import Genotype, VariantInfo, VCFDialect
from .utils import iter_data_lines, open_textmaybe_gzip

logger = logging.getLogger(__name__)


class GenotypeFilter(str, Enum):
    ALL = "all"
    HET = "het"
    HOM_ALT = "hom_alt"


class DbSNPFilter(str, Enum):
    ALL = "all"
    NOT_IN_DBSNP = "not_in_dbsnp"
    IN_DBSNP = "in_dbsnp"


@dataclass(frozen=True)
class VCFInputFilter:
    """Which variants :func:`parse_vcf` should return.

    chrom:
        If non-empty, only variants on this chromosome.
    genotype:
        Restrict to heterozygous or homozygous-alt calls.
    dbsnp:
        Restrict to variants absent from / present in dbSNP.
    """

    chrom: str = ""
    genotype: GenotypeFilter = GenotypeFilter.ALL
    dbsnp: DbSNPFilter = DbSNPFilter.ALL

    @classmethod
    def for_chrom(cls, chrom: str) -> "VCFInputFilter":
        return cls(chrom=chrom)

    def accepts(self, variant: VariantInfo) -> bool:
        if self.chrom and variant.chrom != self.chrom:
            return False
        if self.genotype is GenotypeFilter.HET and variant.genotype is not Genotype.HET:
            return False
        if self.genotype is GenotypeFilter.HOM_ALT and variant.genotype is not Genotype.HOM_ALT:
            return False
        if self.dbsnp is DbSNPFilter.NOT_IN_DBSNP and variant.in_dbsnp:
            return False
        if self.dbsnp is DbSNPFilter.IN_DBSNP and not variant.in_dbsnp:
            return False
        return True


NO_FILTER = VCFInputFilter()


_FIXED_COLUMNS = (
    r"^(?P<chrom>[^\t]+)\t(?P<pos>\d+)\t(?P<id>[^\t]+)\t"
    r"(?P<ref>[^\t]+)\t(?P<alt>[^\t]+)\t(?P<qual>[^\t]+)\t(?P<filter>[^\t]+)\t"
)
_FIRST_SAMPLE = r"\t(?P<format>GT[^\t]*)\t(?P<sample>[^\t]+)(?:\t.*)?$"

# Tried in order; the first pattern that matches decides the dialect.
# GATK (including all-sites output) never writes the samtools DP4 annotation.
_DIALECT_PATTERNS: Dict[VCFDialect, re.Pattern[str]] = {
    VCFDialect.GATK: re.compile(_FIXED_COLUMNS + r"(?P<info>(?![^\t]*\bDP4=)[^\t]+)" + _FIRST_SAMPLE),
    VCFDialect.SAMTOOLS: re.compile(_FIXED_COLUMNS + r"(?P<info>[^\t]*\bDP4=[^\t]*)" + _FIRST_SAMPLE),
}

_INFO_DP = re.compile(r"(?:^|;)DP=(\d+)(?:;|$)")
_GT_SPLIT = re.compile(r"[/|]")


def match_vcf_line(line: str) -> Optional[Tuple[VCFDialect, re.Match[str]]]:
    """Return the dialect and regex match for a VCF data line, or None."""
    for dialect, pattern in _DIALECT_PATTERNS.items():
        m = pattern.match(line)
        if m is not None:
            return dialect, m
    return None


def classify_genotype(gt: str) -> Optional[Genotype]:
    """Classify a GT string; hom-ref and no-calls return None."""
    alleles = _GT_SPLIT.split(gt)
    if any(a in ("", ".") for a in alleles):
        return None
    if len(set(alleles)) > 1:
        return Genotype.HET
    if alleles[0] == "0":
        return None
    return Genotype.HOM_ALT


def _in_dbsnp(variant_id: str, info: str) -> bool:
    if variant_id.startswith("rs"):
        return True
    return "DB" in info.split(";")


def _variant_from_match(
    dialect: VCFDialect,
    m: re.Match[str],
    *,
    vcf_path: str | Path,
    line_no: int,
    line: str,
) -> Optional[VariantInfo]:
    alt = m.group("alt")
    if alt == ".":
        # reference-only site from all-positions output
        return None
    genotype = classify_genotype(m.group("sample").split(":", 1)[0])
    if genotype is None:
        return None

    qual_s = m.group("qual")
    try:
        qual = None if qual_s == "." else float(qual_s)
    except ValueError:
        raise MalformedLineError(
            f"QUAL is not numeric: {qual_s!r}", path=vcf_path, line_no=line_no, line=line
        ) from None

    info = m.group("info")
    dp = _INFO_DP.search(info)
    return VariantInfo(
        chrom=m.group("chrom"),
        pos=int(m.group("pos")),
        ref=m.group("ref"),
        alt=alt,
        genotype=genotype,
        in_dbsnp=_in_dbsnp(m.group("id"), info),
        variant_id=m.group("id"),
        qual=qual,
        depth=int(dp.group(1)) if dp else None,
        dialect=dialect,
    )


def _parse_one_vcf(
    vcf_path: str | Path,
    vcf_filter: VCFInputFilter,
    *,
    progress: bool,
) -> List[VariantInfo]:
    stats: Dict[str, int] = {
        "lines_data": 0,
        "skipped_non_variant": 0,
        "skipped_filter": 0,
        "kept": 0,
    }
    for dialect in VCFDialect:
        stats[f"dialect_{dialect.value}"] = 0

    variants: List[VariantInfo] = []
    with open_textmaybe_gzip(vcf_path, "rt") as fh:
        lines: Iterable[str] = fh
        if progress:
            lines = tqdm(fh, unit="line", desc=f"Reading {Path(vcf_path).name}")
        for line_no, line in iter_data_lines(lines):
            stats["lines_data"] += 1
            matched = match_vcf_line(line)
            if matched is None:
                raise PatternMismatchError(
                    "line does not match the GATK or samtools VCF layout",
                    path=vcf_path,
                    line_no=line_no,
                    line=line,
                )
            dialect, m = matched
            stats[f"dialect_{dialect.value}"] += 1

            variant = _variant_from_match(dialect, m, vcf_path=vcf_path, line_no=line_no, line=line)
            if variant is None:
                stats["skipped_non_variant"] += 1
                continue
            if not vcf_filter.accepts(variant):
                stats["skipped_filter"] += 1
                continue
            variants.append(variant)

    stats["kept"] = len(variants)
    logger.info("Parsed %d variants from %s", len(variants), vcf_path)
    logger.debug("VCF stats for %s: %s", vcf_path, stats)
    return variants


def parse_vcf(
    vcf_files: Union[str, Path, Sequence[Union[str, Path]]],
    vcf_filter: Union[VCFInputFilter, str] = NO_FILTER,
    *,
    progress: bool = False,
) -> List[VariantInfo]:
    """Parse one or more VCF files written by GATK or samtools.

    Parameters
    ----------
    vcf_files:
        A single path or a sequence of paths. Results are concatenated in the
        order given; a variant present in two files is returned twice.
    vcf_filter:
        A :class:`VCFInputFilter`, or a chromosome name as shorthand for
        ``VCFInputFilter.for_chrom(name)``.
    progress:
        Show a progress bar while reading.

    Returns
    -------
    list of VariantInfo in file order.

    Reference-only sites (ALT ``.``), hom-ref calls and no-calls are not
    variants and are left out. A data line that matches neither dialect raises
    :class:`~gtparsers.errors.PatternMismatchError`.
    """
    if isinstance(vcf_files, (str, Path)):
        paths: List[Union[str, Path]] = [vcf_files]
    else:
        paths = list(vcf_files)
    if isinstance(vcf_filter, str):
        vcf_filter = VCFInputFilter.for_chrom(vcf_filter)

    variants: List[VariantInfo] = []
    for p in paths:
        variants.extend(_parse_one_vcf(p, vcf_filter, progress=progress))
    if len(paths) > 1:
        logger.info("Parsed %d variants from %d VCF files", len(variants), len(paths))
    return variants
