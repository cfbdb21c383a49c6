"""gtparsers: readers for genomic text formats.

Covers BED, BEDgraph, copy-number BEDgraph, GATK/samtools VCF, 1000 Genomes
annotation and the simulated/real HapMatrix clone-call formats. Every reader
loads a whole file and returns plain Python records:

    from gtparsers import parse_bed, parse_vcf
    intervals = parse_bed("targets.bed", chrom="chr1")

"""

from __future__ import annotations

__all__ = [
    "__version__",
    "ChromInterval",
    "CopyNumberMap",
    "Genotype",
    "VariantInfo",
    "VCFDialect",
    "TruthValue",
    "SimHapMatrix",
    "RealHapMatrix",
    "VCFInputFilter",
    "GenotypeFilter",
    "DbSNPFilter",
    "NO_FILTER",
    "ParseError",
    "MalformedLineError",
    "DimensionMismatchError",
    "PatternMismatchError",
    "get_env",
    "parse_bed",
    "parse_bedgraph",
    "parse_and_merge_bed",
    "parse_cn_file",
    "parse_sim_hap_matrix",
    "parse_real_hap_matrix",
    "parse_vcf",
    "set_1kg_flags",
    "parse_1kg_freqs",
]

__version__ = "0.1.0"

from .bed import parse_and_merge_bed, parse_bed, parse_bedgraph, parse_cn_file
from .errors import DimensionMismatchError, MalformedLineError, ParseError, PatternMismatchError
from .hapmatrix import parse_real_hap_matrix, parse_sim_hap_matrix
from .models import (
    ChromInterval,
    CopyNumberMap,
    Genotype,
    RealHapMatrix,
    SimHapMatrix,
    TruthValue,
    VariantInfo,
    VCFDialect,
)
from .onekg import parse_1kg_freqs, set_1kg_flags
from .utils import get_env
from .vcf import NO_FILTER, DbSNPFilter, GenotypeFilter, VCFInputFilter, parse_vcf
