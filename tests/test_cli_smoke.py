import subprocess
import sys


def test_cli_help() -> None:
    cp = subprocess.run(
        [sys.executable, "-m", "gtparsers", "--help"],
        check=True,
        capture_output=True,
        text=True,
    )
    assert "gtparsers" in cp.stdout.lower()
