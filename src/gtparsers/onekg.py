"""Annotation of parsed variants against 1000 Genomes (1KG) VCFs.

1KG releases are sites-only VCFs with well-formed headers, so records are read
through :class:`pysam.VariantFile` rather than the caller dialects of
:mod:`gtparsers.vcf`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Set, Tuple, Union

import pysam
from tqdm import tqdm

from .errors import MalformedLineError
from .models import VariantInfo, variant_tag
from .validation import detect_contig_style, remap_contig, tabix_index_path

logger = logging.getLogger(__name__)


def contig_aliases(chrom: str) -> List[str]:
    """Names under which ``chrom`` may appear in a reference: itself, then the other naming style."""
    style = detect_contig_style([chrom])
    other = remap_contig(chrom, "ensembl" if style == "ucsc" else "ucsc")
    return [chrom] if other == chrom else [chrom, other]


def _reference_records(vcf_path: str | Path, chrom: str) -> Iterator[pysam.VariantRecord]:
    """Yield reference records on ``chrom`` or its alias in the other naming style.

    Uses the tabix index when one exists, otherwise scans the whole file. Both
    paths select the same records.
    """
    names = contig_aliases(chrom)
    idx = tabix_index_path(vcf_path)
    with pysam.VariantFile(str(vcf_path), index_filename=str(idx) if idx else None) as vcf:
        if idx is None:
            wanted = set(names)
            for rec in vcf:
                if rec.contig in wanted:
                    yield rec
            return

        n_found = 0
        for name in names:
            try:
                iterator = vcf.fetch(name)
            except (ValueError, KeyError):
                logger.debug("Contig %s is not in the index of %s", name, vcf_path)
                continue
            n_found += 1
            if name != chrom:
                logger.info("Reading %s as %s from %s", chrom, name, vcf_path)
            for rec in iterator:
                yield rec
        if n_found == 0:
            logger.warning("Chromosome %s is not present in the index of %s", chrom, vcf_path)


def set_1kg_flags(variants: List[VariantInfo], vcf_1kg_file: str | Path, chrom: str) -> int:
    """Mark the variants on ``chrom`` that also appear in a 1KG VCF.

    A variant matches when position, reference and alternate allele are equal
    (multi-allelic reference records match on any of their alleles). The
    reference may name the chromosome ``chr1`` or ``1``. Matching variants get
    ``in_1kg = True``; other variants are not touched.

    Returns the number of variants flagged.
    """
    known: Set[Tuple[int, str, str]] = set()
    for rec in _reference_records(vcf_1kg_file, chrom):
        alts = rec.alts or ()
        known.add((rec.pos, rec.ref, ",".join(alts)))
        for a in alts:
            known.add((rec.pos, rec.ref, a))
    logger.debug("Loaded %d 1KG alleles on %s from %s", len(known), chrom, vcf_1kg_file)

    n_flagged = 0
    for v in variants:
        if v.chrom == chrom and (v.pos, v.ref, v.alt) in known:
            v.in_1kg = True
            n_flagged += 1
    logger.info("%d of %d variants on %s are in 1KG", n_flagged, len(variants), chrom)
    return n_flagged


def _as_list(value: Any) -> List[Any]:
    # INFO values are scalars, tuples, or raw strings for undeclared keys
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str):
        return value.split(",")
    return [value]


def allele_frequencies(info: Mapping[str, Any], n_alts: int) -> List[float]:
    """Per-ALT allele frequencies from a record's INFO: AF if present, else AC/AN.

    Raises ValueError if neither is usable.
    """
    if "AF" in info and info["AF"] is not None:
        afs = [float(x) for x in _as_list(info["AF"])]
    elif "AC" in info and "AN" in info and info["AC"] is not None and info["AN"] is not None:
        an = int(_as_list(info["AN"])[0])
        if an <= 0:
            raise ValueError(f"AN must be positive, got {an}")
        afs = [int(x) / an for x in _as_list(info["AC"])]
    else:
        raise ValueError("INFO has neither AF nor AC/AN")
    if len(afs) != n_alts:
        raise ValueError(f"{len(afs)} frequencies for {n_alts} ALT alleles")
    for f in afs:
        if not 0.0 <= f <= 1.0:
            raise ValueError(f"allele frequency {f} outside [0, 1]")
    return afs


def parse_1kg_freqs(
    vcf_files: Union[str, Path, Sequence[Union[str, Path]]],
    *,
    progress: bool = False,
) -> Dict[str, float]:
    """Map variant tag (<chrom>_<pos>_<ref>_<alt>) to 1KG allele frequency.

    Multi-allelic records produce one tag per ALT allele. When the same tag
    occurs in several files, the last file read wins. A record with neither AF
    nor AC/AN raises :class:`~gtparsers.errors.MalformedLineError`.
    """
    if isinstance(vcf_files, (str, Path)):
        vcf_files = [vcf_files]

    freqs: Dict[str, float] = {}
    for vcf_path in vcf_files:
        n_before = len(freqs)
        with pysam.VariantFile(str(vcf_path)) as vcf:
            records: Iterable[pysam.VariantRecord] = vcf
            if progress:
                records = tqdm(vcf, unit="record", desc=f"Reading {Path(vcf_path).name}")
            for rec in records:
                alts = rec.alts
                if not alts:
                    continue
                try:
                    afs = allele_frequencies(rec.info, len(alts))
                except ValueError as e:
                    raise MalformedLineError(
                        f"{rec.contig}:{rec.pos}: {e}", path=vcf_path, line=str(rec)
                    ) from None
                for a, f in zip(alts, afs):
                    freqs[variant_tag(rec.contig, rec.pos, rec.ref, a)] = f
        logger.info("Read %s: %d new variant tags (%d total)", vcf_path, len(freqs) - n_before, len(freqs))
    return freqs
