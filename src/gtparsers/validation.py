from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)


_UCSC_PREFIX = "chr"


def tabix_index_path(vcf_path: str | Path) -> Optional[Path]:
    """Return the tabix index of a bgzipped VCF, or None if it has none."""
    vcf = Path(vcf_path)
    if vcf.suffix != ".gz":
        return None
    for idx in (vcf.with_suffix(vcf.suffix + ".tbi"), vcf.with_suffix(vcf.suffix + ".csi")):
        if idx.exists():
            return idx
    logger.info(
        "%s is compressed but not tabix-indexed; reading it sequentially. "
        "Run: tabix -p vcf %s",
        vcf,
        vcf,
    )
    return None


def detect_contig_style(contigs: Iterable[str]) -> str:
    """Infer contig style: 'ucsc' if most contigs start with 'chr', else 'ensembl'."""
    names = [c for c in contigs if c]
    if not names:
        return "unknown"
    chr_like = [c for c in names if c.startswith(_UCSC_PREFIX)]
    if len(chr_like) >= max(1, int(0.5 * len(names))):
        return "ucsc"
    return "ensembl"


def remap_contig(contig: str, style: str) -> str:
    """Remap a contig name to the requested style (ucsc or ensembl)."""
    if style == "ucsc":
        if contig.startswith(_UCSC_PREFIX):
            return contig
        if contig == "MT":
            return "chrM"
        return f"{_UCSC_PREFIX}{contig}"
    if style == "ensembl":
        if contig.startswith(_UCSC_PREFIX):
            core = contig[len(_UCSC_PREFIX) :]
            if core == "M":
                return "MT"
            return core
        return contig
    return contig
