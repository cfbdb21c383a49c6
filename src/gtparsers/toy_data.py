from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Tuple

import pysam

from .utils import ensure_outdir, write_json

_CONTIG_LENGTHS = {"chr1": 1000, "chr2": 500}

_BED = [
    ("chr1", 0, 100),
    ("chr1", 100, 200),
    ("chr1", 200, 300),
    ("chr2", 0, 50),
]

_BEDGRAPH_VALUES = [0.5, 1.25, 2.0, 0.75]

_CN_CALLS = [
    ("chr1", 0, 200, 2),
    ("chr1", 0, 200, 3),
    ("chr1", 150, 300, 1),
    ("chr2", 0, 50, 2),
]

_CALLS_VCF = """\
##fileformat=VCFv4.1
##source=toy
#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\tFORMAT\tTOY
chr1\t100\trs123\tA\tG\t50.0\tPASS\tAC=1;AF=0.50;AN=2;DB;DP=20\tGT:AD:DP:GQ:PL\t0/1:10,10:20:99:500,0,500
chr1\t150\t.\tC\t.\t.\t.\tAN=2;DP=18\tGT:DP\t0/0:18
chr1\t200\t.\tG\tT\t80.0\tPASS\tAC=2;AF=1.00;AN=2;DP=25\tGT:AD:DP:GQ:PL\t1/1:0,25:25:75:900,75,0
chr2\t30\t.\tT\tC\t40.0\t.\tDP=15;VDB=0.03;DP4=3,4,5,3;MQ=60\tGT:PL:GQ\t0/1:70,0,80:72
"""

# (contig, pos1, id, ref, alts, allele frequencies)
_ONEKG_SITES: List[Tuple[str, int, str, str, Tuple[str, ...], Tuple[float, ...]]] = [
    ("chr1", 100, "rs123", "A", ("G",), (0.3,)),
    ("chr1", 300, "rs456", "C", ("T", "G"), (0.1, 0.02)),
    ("chr2", 30, "rs789", "T", ("C",), (0.05,)),
]

_SIM_MATRIX = """\
# simulated clone calls
3
10
4
0101100110
0 0101 1
3 1100 0
6 0110 ?
"""

_REAL_MATRIX = """\
2
3
0 chr1_100_A_G 1
1 chr1_200_G_T 0
2 chr1_200_G_T 1
chr1 50 250 30.5 0:A,1:G
chr1 180 400 12 1:T,2:T
"""


def _write_lines(path: Path, rows: List[Tuple[object, ...]]) -> None:
    path.write_text("".join("\t".join(str(x) for x in row) + "\n" for row in rows), encoding="utf-8")


def _write_onekg_vcf(outdir: Path) -> Path:
    vcf_path = outdir / "onekg.sites.vcf"
    header = pysam.VariantHeader()
    header.add_meta("fileformat", "VCFv4.2")
    for contig, length in _CONTIG_LENGTHS.items():
        header.contigs.add(contig, length=length)
    header.info.add("AF", number="A", type="Float", description="Allele frequency")

    with pysam.VariantFile(str(vcf_path), "w", header=header) as vcf:
        for contig, pos1, rid, ref, alts, afs in _ONEKG_SITES:
            rec = vcf.new_record(
                contig=contig,
                start=pos1 - 1,
                stop=pos1 - 1 + len(ref),
                alleles=(ref,) + alts,
                id=rid,
            )
            rec.info["AF"] = afs
            vcf.write(rec)

    vcf_gz = outdir / "onekg.sites.vcf.gz"
    pysam.tabix_compress(str(vcf_path), str(vcf_gz), force=True)
    pysam.tabix_index(str(vcf_gz), preset="vcf", force=True)
    return vcf_gz


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Write one small example file per supported format.

    The outputs include:
    - intervals.bed, values.bedgraph, cn_calls.bedgraph
    - calls.vcf (GATK and samtools records)
    - onekg.sites.vcf.gz (+ .tbi)
    - sim_matrix.txt, real_matrix.txt

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)

    bed = outdir_p / "intervals.bed"
    _write_lines(bed, list(_BED))

    bedgraph = outdir_p / "values.bedgraph"
    _write_lines(bedgraph, [row + (v,) for row, v in zip(_BED, _BEDGRAPH_VALUES)])

    cn = outdir_p / "cn_calls.bedgraph"
    _write_lines(cn, list(_CN_CALLS))

    calls_vcf = outdir_p / "calls.vcf"
    calls_vcf.write_text(_CALLS_VCF, encoding="utf-8")

    onekg = _write_onekg_vcf(outdir_p)

    sim = outdir_p / "sim_matrix.txt"
    sim.write_text(_SIM_MATRIX, encoding="utf-8")

    real = outdir_p / "real_matrix.txt"
    real.write_text(_REAL_MATRIX, encoding="utf-8")

    summary = {
        "bed": str(bed),
        "bedgraph": str(bedgraph),
        "cn": str(cn),
        "calls_vcf": str(calls_vcf),
        "onekg_vcf": str(onekg),
        "sim_matrix": str(sim),
        "real_matrix": str(real),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
