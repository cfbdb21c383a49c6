from pathlib import Path

import pysam
import pytest

from gtparsers.errors import MalformedLineError
from gtparsers.models import Genotype, VariantInfo
from gtparsers.onekg import allele_frequencies, contig_aliases, parse_1kg_freqs, set_1kg_flags

SITES_HEADER = (
    "##fileformat=VCFv4.1\n"
    '##INFO=<ID=AF,Number=A,Type=Float,Description="Allele frequency">\n'
    '##INFO=<ID=AC,Number=A,Type=Integer,Description="Allele count">\n'
    '##INFO=<ID=AN,Number=1,Type=Integer,Description="Total number of alleles">\n'
    '##INFO=<ID=DP,Number=1,Type=Integer,Description="Depth">\n'
    "##contig=<ID=1,length=1000>\n"
    "##contig=<ID=2,length=1000>\n"
    "#CHROM\tPOS\tID\tREF\tALT\tQUAL\tFILTER\tINFO\n"
)


def _write_sites(path: Path, *rows: str) -> Path:
    path.write_text(SITES_HEADER + "".join(r + "\n" for r in rows), encoding="utf-8")
    return path


def _variant(chrom: str, pos: int, ref: str, alt: str, *, in_1kg: bool = False) -> VariantInfo:
    return VariantInfo(chrom=chrom, pos=pos, ref=ref, alt=alt, genotype=Genotype.HET, in_dbsnp=False, in_1kg=in_1kg)


def _bgzip_and_index(plain: Path) -> Path:
    gz = plain.with_suffix(plain.suffix + ".gz")
    pysam.tabix_compress(str(plain), str(gz), force=True)
    pysam.tabix_index(str(gz), preset="vcf", force=True)
    return gz


@pytest.fixture
def onekg_vcf(tmp_path: Path) -> Path:
    return _write_sites(
        tmp_path / "1kg.vcf",
        "1\t100\trs1\tA\tG\t.\tPASS\tAF=0.25",
        "1\t300\trs2\tC\tT,G\t.\tPASS\tAF=0.125,0.5",
        "2\t30\trs3\tT\tC\t.\tPASS\tAC=5;AN=100",
    )


def test_contig_aliases() -> None:
    assert contig_aliases("chr1") == ["chr1", "1"]
    assert contig_aliases("1") == ["1", "chr1"]
    assert contig_aliases("MT") == ["MT", "chrM"]


def test_set_1kg_flags_sequential(onekg_vcf: Path) -> None:
    variants = [
        _variant("1", 100, "A", "G"),
        _variant("1", 100, "A", "C"),
        _variant("1", 300, "C", "G"),
        _variant("2", 30, "T", "C"),
    ]
    assert set_1kg_flags(variants, onekg_vcf, "1") == 2
    assert [v.in_1kg for v in variants] == [True, False, True, False]


def test_set_1kg_flags_leaves_unmatched_untouched(onekg_vcf: Path) -> None:
    variants = [_variant("5", 100, "A", "G", in_1kg=True), _variant("5", 7, "C", "T")]
    assert set_1kg_flags(variants, onekg_vcf, "5") == 0
    assert [v.in_1kg for v in variants] == [True, False]


@pytest.mark.parametrize("chrom", ["1", "chr1"])
def test_set_1kg_flags_same_with_and_without_index(onekg_vcf: Path, chrom: str) -> None:
    gz = _bgzip_and_index(onekg_vcf)
    results = []
    for ref in (onekg_vcf, gz):
        variants = [_variant(chrom, 100, "A", "G"), _variant(chrom, 300, "C", "T"), _variant(chrom, 7, "G", "A")]
        n = set_1kg_flags(variants, ref, chrom)
        results.append((n, [v.in_1kg for v in variants]))
    assert results[0] == results[1] == (2, [True, True, False])


def test_set_1kg_flags_tabix_missing_chrom(onekg_vcf: Path) -> None:
    gz = _bgzip_and_index(onekg_vcf)
    variants = [_variant("chrX", 100, "A", "G")]
    assert set_1kg_flags(variants, gz, "chrX") == 0
    assert not variants[0].in_1kg


def test_allele_frequencies() -> None:
    assert allele_frequencies({"AF": (0.25,)}, 1) == [0.25]
    assert allele_frequencies({"AC": (1, 3), "AN": 4}, 2) == [0.25, 0.75]
    assert allele_frequencies({"AF": "0.5,0.25"}, 2) == [0.5, 0.25]
    with pytest.raises(ValueError):
        allele_frequencies({"DP": 10}, 1)
    with pytest.raises(ValueError):
        allele_frequencies({"AF": (0.1, 0.2)}, 1)


def test_parse_1kg_freqs(onekg_vcf: Path) -> None:
    freqs = parse_1kg_freqs([onekg_vcf])
    assert freqs == pytest.approx(
        {
            "1_100_A_G": 0.25,
            "1_300_C_T": 0.125,
            "1_300_C_G": 0.5,
            "2_30_T_C": 0.05,
        }
    )


def test_parse_1kg_freqs_with_progress(onekg_vcf: Path) -> None:
    assert parse_1kg_freqs(onekg_vcf, progress=True) == parse_1kg_freqs(onekg_vcf)


def test_parse_1kg_freqs_later_file_wins(tmp_path: Path, onekg_vcf: Path) -> None:
    later = _write_sites(tmp_path / "later.vcf", "1\t100\trs1\tA\tG\t.\tPASS\tAF=0.75")
    freqs = parse_1kg_freqs([onekg_vcf, later])
    assert freqs["1_100_A_G"] == pytest.approx(0.75)
    assert parse_1kg_freqs([later, onekg_vcf])["1_100_A_G"] == pytest.approx(0.25)


def test_parse_1kg_freqs_missing_frequency_is_malformed(tmp_path: Path) -> None:
    bad = _write_sites(tmp_path / "bad.vcf", "1\t100\t.\tA\tG\t.\tPASS\tDP=3")
    with pytest.raises(MalformedLineError):
        parse_1kg_freqs(bad)


def test_parse_1kg_freqs_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        parse_1kg_freqs(tmp_path / "missing.vcf")
