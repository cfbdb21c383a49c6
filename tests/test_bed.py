import gzip
from pathlib import Path

import pytest

from gtparsers.bed import parse_and_merge_bed, parse_bed, parse_bedgraph, parse_cn_file
from gtparsers.errors import MalformedLineError
from gtparsers.models import ChromInterval


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def three_intervals(tmp_path: Path) -> Path:
    return _write(tmp_path / "three.bed", "chr1\t0\t100\nchr1\t100\t200\nchr2\t0\t50\n")


def test_parse_bed_file_order(three_intervals: Path) -> None:
    assert parse_bed(three_intervals) == [
        ChromInterval("chr1", 0, 100),
        ChromInterval("chr1", 100, 200),
        ChromInterval("chr2", 0, 50),
    ]


def test_parse_bed_chrom_filter(three_intervals: Path) -> None:
    assert parse_bed(three_intervals, "chr1") == [
        ChromInterval("chr1", 0, 100),
        ChromInterval("chr1", 100, 200),
    ]
    assert parse_bed(three_intervals, "chrX") == []


def test_parse_bed_skips_comments_blank_and_track_lines(tmp_path: Path) -> None:
    bed = _write(
        tmp_path / "hdr.bed",
        "track name=test\nbrowser position chr1:1-100\n# comment\n\nchr1 5 10 name 0 +\n",
    )
    assert parse_bed(bed) == [ChromInterval("chr1", 5, 10)]


def test_parse_bed_gzip(tmp_path: Path) -> None:
    p = tmp_path / "x.bed.gz"
    with gzip.open(p, "wt") as fh:
        fh.write("chr3\t1\t2\n")
    assert parse_bed(p) == [ChromInterval("chr3", 1, 2)]


def test_malformed_start_names_line(tmp_path: Path) -> None:
    bed = _write(tmp_path / "bad.bed", "chr1\t0\t100\nchr1\tabc\t200\n")
    with pytest.raises(MalformedLineError) as excinfo:
        parse_bed(bed)
    assert excinfo.value.line_no == 2
    assert "abc" in str(excinfo.value)
    assert str(bed) in str(excinfo.value)


def test_too_few_columns(tmp_path: Path) -> None:
    bed = _write(tmp_path / "short.bed", "chr1\t0\n")
    with pytest.raises(MalformedLineError):
        parse_bed(bed)


def test_end_before_start_is_malformed(tmp_path: Path) -> None:
    bed = _write(tmp_path / "rev.bed", "chr1\t200\t100\n")
    with pytest.raises(MalformedLineError):
        parse_bed(bed)


def test_bad_lines_on_other_chroms_are_ignored_by_filter(tmp_path: Path) -> None:
    bed = _write(tmp_path / "mixed.bed", "chr2\tabc\tdef\nchr1\t0\t10\nchr3\n")
    assert parse_bed(bed, "chr1") == [ChromInterval("chr1", 0, 10)]


def test_missing_file_raises_oserror(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        parse_bed(tmp_path / "nope.bed")


def test_parse_bedgraph_values(tmp_path: Path) -> None:
    bg = _write(tmp_path / "v.bedgraph", "chr1\t0\t10\t1.5\nchr2\t0\t10\t-2\nchr1\t10\t20\t3e-1\n")
    assert parse_bedgraph(bg) == [
        (ChromInterval("chr1", 0, 10), 1.5),
        (ChromInterval("chr2", 0, 10), -2.0),
        (ChromInterval("chr1", 10, 20), 0.3),
    ]
    assert [v for _, v in parse_bedgraph(bg, "chr1")] == [1.5, 0.3]


def test_parse_bedgraph_requires_numeric_value(tmp_path: Path) -> None:
    bg = _write(tmp_path / "v.bedgraph", "chr1\t0\t10\thigh\n")
    with pytest.raises(MalformedLineError):
        parse_bedgraph(bg)
    bg3 = _write(tmp_path / "v3.bedgraph", "chr1\t0\t10\n")
    with pytest.raises(MalformedLineError):
        parse_bedgraph(bg3)


def test_parse_cn_file_keeps_duplicates(tmp_path: Path) -> None:
    cn = _write(
        tmp_path / "cn.bedgraph",
        "chr2\t0\t50\t2\nchr1\t0\t200\t2\nchr1\t0\t200\t3\nchr1\t150\t300\t1\n",
    )
    calls = parse_cn_file(cn)
    assert len(calls) == 4
    assert calls.get_all(ChromInterval("chr1", 0, 200)) == [2, 3]
    assert [ci for ci, _ in calls.items()] == [
        ChromInterval("chr1", 0, 200),
        ChromInterval("chr1", 0, 200),
        ChromInterval("chr1", 150, 300),
        ChromInterval("chr2", 0, 50),
    ]

    only_chr2 = parse_cn_file(cn, "chr2")
    assert list(only_chr2.items()) == [(ChromInterval("chr2", 0, 50), 2)]


def test_parse_cn_file_rejects_fractional_copy_number(tmp_path: Path) -> None:
    cn = _write(tmp_path / "cn.bedgraph", "chr1\t0\t10\t2.0\n")
    with pytest.raises(MalformedLineError):
        parse_cn_file(cn)


def test_merge_windows_of_two(three_intervals: Path) -> None:
    windows = parse_and_merge_bed(three_intervals, 2)
    assert windows == {
        "chr1": [ChromInterval("chr1", 0, 200)],
        "chr2": [ChromInterval("chr2", 0, 50)],
    }


def test_merge_window_counts_and_spans(tmp_path: Path) -> None:
    rows = "".join(f"chr1\t{i * 10}\t{i * 10 + 5}\n" for i in range(7))
    bed = _write(tmp_path / "seven.bed", rows)
    windows = parse_and_merge_bed(bed, 3)["chr1"]
    assert len(windows) == 3  # ceil(7 / 3)
    assert windows[0] == ChromInterval("chr1", 0, 25)
    assert windows[1] == ChromInterval("chr1", 30, 55)
    assert windows[2] == ChromInterval("chr1", 60, 65)


def test_merge_sorts_unsorted_input(tmp_path: Path) -> None:
    bed = _write(tmp_path / "unsorted.bed", "chr1\t100\t200\nchr1\t0\t100\nchr1\t300\t400\n")
    assert parse_and_merge_bed(bed, 2)["chr1"] == [
        ChromInterval("chr1", 0, 200),
        ChromInterval("chr1", 300, 400),
    ]


def test_merge_output_chroms_sorted(tmp_path: Path) -> None:
    bed = _write(tmp_path / "order.bed", "chr2\t0\t1\nchr1\t0\t1\n")
    assert list(parse_and_merge_bed(bed, 1)) == ["chr1", "chr2"]


def test_merge_rejects_zero_window(three_intervals: Path) -> None:
    with pytest.raises(ValueError):
        parse_and_merge_bed(three_intervals, 0)


def test_digit_separators_are_malformed(tmp_path: Path) -> None:
    bed = _write(tmp_path / "sep.bed", "chr1\t1_000\t2_000\n")
    with pytest.raises(MalformedLineError):
        parse_bed(bed)
    bg = _write(tmp_path / "sep.bedgraph", "chr1\t0\t10\t1_0\n")
    with pytest.raises(MalformedLineError):
        parse_bedgraph(bg)
    cn = _write(tmp_path / "sep.cn", "chr1\t0\t10\t2_0\n")
    with pytest.raises(MalformedLineError):
        parse_cn_file(cn)


def test_signed_coordinates_parse(tmp_path: Path) -> None:
    bed = _write(tmp_path / "signed.bed", "chr1\t+5\t10\n")
    assert parse_bed(bed) == [ChromInterval("chr1", 5, 10)]
