from __future__ import annotations

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence

import numpy as np

from . import __version__
from .bed import parse_and_merge_bed, parse_bed, parse_bedgraph, parse_cn_file
from .hapmatrix import parse_real_hap_matrix, parse_sim_hap_matrix
from .models import ChromInterval
from .onekg import parse_1kg_freqs, set_1kg_flags
from .toy_data import make_toy_data
from .utils import get_env, to_jsonable, write_json
from .vcf import DbSNPFilter, GenotypeFilter, VCFInputFilter, parse_vcf

ONEKG_ENV_VAR = "GTPARSERS_1KG_VCF"

_GENOTYPE_CHOICES = {
    "all": GenotypeFilter.ALL,
    "het": GenotypeFilter.HET,
    "hom-alt": GenotypeFilter.HOM_ALT,
}
_DBSNP_CHOICES = {
    "all": DbSNPFilter.ALL,
    "novel": DbSNPFilter.NOT_IN_DBSNP,
    "known": DbSNPFilter.IN_DBSNP,
}


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _handle_error(err: Exception) -> int:
    if isinstance(err, OSError):
        msg = f"Cannot read input: {err}"
    else:
        msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    return 2


def _emit(summary: Dict[str, Any], records: Any, out: Optional[str]) -> None:
    if out is not None:
        write_json(out, to_jsonable(records))
        summary["out"] = out
    sys.stdout.write(json.dumps(to_jsonable(summary), indent=2, sort_keys=True) + "\n")


def _value_stats(values: Sequence[float]) -> Dict[str, Optional[float]]:
    if len(values) == 0:
        return {"n": 0, "min": None, "max": None, "mean": None, "median": None}
    arr = np.asarray(values, dtype=float)
    return {
        "n": int(arr.size),
        "min": float(arr.min()),
        "max": float(arr.max()),
        "mean": float(arr.mean()),
        "median": float(np.median(arr)),
    }


def _per_chrom(intervals: Iterable[ChromInterval]) -> Dict[str, int]:
    return dict(Counter(ci.chrom for ci in intervals))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gtparsers",
        description=(
            "gtparsers: readers for BED, BEDgraph, copy-number, VCF (GATK/samtools) "
            "and HapMatrix files. Each command prints a JSON summary of what was parsed."
        ),
    )
    p.add_argument("--version", action="version", version=f"gtparsers {__version__}")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG.")
    p.add_argument("--log-file", type=Path, default=None, help="Also write log messages to this file.")

    sub = p.add_subparsers(dest="cmd", required=True)

    def add_out(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--out", default=None, help="Write the full parsed records as JSON here.")

    for name, help_text in (
        ("bed", "Parse a BED file."),
        ("bedgraph", "Parse a BEDgraph file (numeric 4th column)."),
        ("cn", "Parse a copy number BEDgraph (integer 4th column)."),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("path", type=_path_exists)
        sp.add_argument("--chrom", default="", help="Only read this chromosome.")
        add_out(sp)

    m = sub.add_parser("merge-bed", help="Merge BED intervals into windows of N intervals.")
    m.add_argument("path", type=_path_exists)
    m.add_argument("--window", type=int, required=True, help="Intervals per window (>= 1).")
    add_out(m)

    v = sub.add_parser("vcf", help="Parse GATK/samtools VCFs.")
    v.add_argument("paths", nargs="+", type=_path_exists)
    v.add_argument("--chrom", default="", help="Only return variants on this chromosome.")
    v.add_argument("--genotype", choices=sorted(_GENOTYPE_CHOICES), default="all")
    v.add_argument("--dbsnp", choices=sorted(_DBSNP_CHOICES), default="all")
    v.add_argument(
        "--onekg",
        default=None,
        help=f"1000 Genomes VCF used to flag variants (default: ${ONEKG_ENV_VAR}).",
    )
    v.add_argument("--progress", action="store_true", help="Show a progress bar.")
    add_out(v)

    f = sub.add_parser("1kg-freqs", help="Read allele frequencies from 1000 Genomes VCFs.")
    f.add_argument("paths", nargs="+", type=_path_exists)
    f.add_argument("--progress", action="store_true", help="Show a progress bar.")
    add_out(f)

    for name, help_text in (
        ("sim-matrix", "Parse a simulated HapMatrix."),
        ("real-matrix", "Parse a real-data HapMatrix."),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("path", type=_path_exists)
        add_out(sp)

    t = sub.add_parser("make-toy-data", help="Write small example files for every supported format.")
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")

    return p


def cmd_bed(args: argparse.Namespace) -> int:
    intervals = parse_bed(args.path, args.chrom)
    summary = {
        "file": args.path,
        "n_intervals": len(intervals),
        "per_chrom": _per_chrom(intervals),
        "total_bp": sum(ci.length for ci in intervals),
    }
    _emit(summary, intervals, args.out)
    return 0


def cmd_bedgraph(args: argparse.Namespace) -> int:
    records = parse_bedgraph(args.path, args.chrom)
    summary = {
        "file": args.path,
        "n_intervals": len(records),
        "per_chrom": _per_chrom(ci for ci, _ in records),
        "value_stats": _value_stats([v for _, v in records]),
    }
    _emit(summary, [{"interval": ci, "value": v} for ci, v in records], args.out)
    return 0


def cmd_cn(args: argparse.Namespace) -> int:
    calls = parse_cn_file(args.path, args.chrom)
    cns, counts = np.unique(np.asarray(calls.values(), dtype=np.int64), return_counts=True)
    summary = {
        "file": args.path,
        "n_calls": len(calls),
        "n_distinct_intervals": len(calls.intervals()),
        "cn_histogram": {str(int(cn)): int(n) for cn, n in zip(cns, counts)},
    }
    _emit(summary, [{"interval": ci, "cn": cn} for ci, cn in calls.items()], args.out)
    return 0


def cmd_merge_bed(args: argparse.Namespace) -> int:
    windows = parse_and_merge_bed(args.path, args.window)
    summary = {
        "file": args.path,
        "window": args.window,
        "n_windows": sum(len(w) for w in windows.values()),
        "per_chrom": {chrom: len(w) for chrom, w in windows.items()},
    }
    _emit(summary, windows, args.out)
    return 0


def cmd_vcf(args: argparse.Namespace) -> int:
    logger = logging.getLogger("gtparsers")
    vcf_filter = VCFInputFilter(
        chrom=args.chrom,
        genotype=_GENOTYPE_CHOICES[args.genotype],
        dbsnp=_DBSNP_CHOICES[args.dbsnp],
    )
    variants = parse_vcf(args.paths, vcf_filter, progress=args.progress)

    summary: Dict[str, Any] = {
        "files": args.paths,
        "n_variants": len(variants),
        "per_chrom": dict(Counter(v.chrom for v in variants)),
        "genotype": dict(Counter(v.genotype.value for v in variants)),
        "dialect": dict(Counter(v.dialect.value for v in variants)),
        "in_dbsnp": sum(1 for v in variants if v.in_dbsnp),
    }

    onekg = args.onekg or get_env(ONEKG_ENV_VAR)
    if onekg:
        if not Path(onekg).exists():
            raise FileNotFoundError(f"1000 Genomes VCF not found: {onekg}")
        logger.info("Flagging variants found in %s", onekg)
        n_1kg = 0
        for chrom in sorted(set(v.chrom for v in variants)):
            n_1kg += set_1kg_flags(variants, onekg, chrom)
        summary["onekg_vcf"] = onekg
        summary["in_1kg"] = n_1kg

    _emit(summary, variants, args.out)
    return 0


def cmd_1kg_freqs(args: argparse.Namespace) -> int:
    freqs = parse_1kg_freqs(args.paths, progress=args.progress)
    summary = {
        "files": args.paths,
        "n_tags": len(freqs),
        "freq_stats": _value_stats(list(freqs.values())),
    }
    _emit(summary, freqs, args.out)
    return 0


def cmd_sim_matrix(args: argparse.Namespace) -> int:
    matrix = parse_sim_hap_matrix(args.path)
    summary = {
        "file": args.path,
        "n_clones": matrix.n_clones,
        "n_loci": matrix.n_loci,
        "frag_size": matrix.frag_size,
        "frag_truth": dict(Counter(t.value for t in matrix.frag_truth)),
    }
    _emit(summary, matrix, args.out)
    return 0


def cmd_real_matrix(args: argparse.Namespace) -> int:
    matrix = parse_real_hap_matrix(args.path)
    summary = {
        "file": args.path,
        "n_frags": matrix.n_frags,
        "n_loci": matrix.n_loci,
        "n_variant_tags": len(matrix.var_calls),
        "qscore_stats": _value_stats(matrix.clone_qscores),
    }
    _emit(summary, matrix, args.out)
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    paths = make_toy_data(outdir=args.outdir)
    sys.stdout.write(json.dumps(paths, indent=2, sort_keys=True) + "\n")
    return 0


_COMMANDS = {
    "bed": cmd_bed,
    "bedgraph": cmd_bedgraph,
    "cn": cmd_cn,
    "merge-bed": cmd_merge_bed,
    "vcf": cmd_vcf,
    "1kg-freqs": cmd_1kg_freqs,
    "sim-matrix": cmd_sim_matrix,
    "real-matrix": cmd_real_matrix,
    "make-toy-data": cmd_make_toy_data,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose, logfile=args.log_file)
    logging.getLogger("gtparsers").debug("gtparsers %s: %s", __version__, args.cmd)

    try:
        return _COMMANDS[args.cmd](args)
    except (OSError, ValueError) as e:
        return _handle_error(e)
