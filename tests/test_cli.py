"""Tests for CLI argument parsing and the scan command."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from conftest import VITALIK

from defilens.cli import _build_parser, main

BROKEN = "0x5AAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


@pytest.fixture(autouse=True)
def _no_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep scans offline whatever the developer's environment holds."""
    for name in (
        "DEFILENS_INFURA_PROJECT_ID",
        "DEFILENS_AMBERDATA_API_KEY",
        "DEFILENS_MAX_NUMBER_OF_PROBLEMS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(Path(__file__).parent)


class TestArgParser:
    def test_version_flag(self) -> None:
        args = _build_parser().parse_args(["--version"])
        assert args.version is True

    def test_serve_defaults(self) -> None:
        args = _build_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.tcp is False
        assert args.host == "127.0.0.1"
        assert args.port == 2087

    def test_scan_with_options(self) -> None:
        args = _build_parser().parse_args(
            [
                "scan",
                "notes.txt",
                "--format",
                "json",
                "--max-problems",
                "3",
                "--verbose",
            ]
        )
        assert args.path == "notes.txt"
        assert args.format == "json"
        assert args.max_problems == 3
        assert args.verbose is True

    def test_no_command_prints_help(self) -> None:
        args = _build_parser().parse_args([])
        assert args.command is None


class TestMain:
    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["--version"])
        assert capsys.readouterr().out.startswith("defilens ")

    def test_scan_text(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        target = tmp_path / "notes.txt"
        target.write_text(f"first\npay {VITALIK.lower()}\n", encoding="utf-8")
        main(["scan", str(target)])

        out = capsys.readouterr().out.strip()
        assert out == (
            f"{target}:2:5: warning: {VITALIK.lower()} is not a checksum"
            f" address [checksum:{VITALIK}]"
        )

    def test_scan_json_and_limit(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("\n".join([VITALIK.lower()] * 3), encoding="utf-8")
        main(["scan", str(target), "--format", "json", "--max-problems", "2"])

        records = json.loads(capsys.readouterr().out)
        assert [r["line"] for r in records] == [1, 2]
        assert records[0]["severity"] == "warning"

    def test_scan_errors_exit_nonzero(self, tmp_path: Path) -> None:
        target = tmp_path / "notes.txt"
        target.write_text(BROKEN, encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(target)])
        assert exc_info.value.code == 1

    def test_scan_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(tmp_path / "absent.txt")])
        assert exc_info.value.code == 1

    def test_negative_limit(self, tmp_path: Path) -> None:
        target = tmp_path / "notes.txt"
        target.write_text("", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["scan", str(target), "--max-problems", "-1"])
        assert exc_info.value.code == 2

    def test_serve_tcp(self) -> None:
        fake = MagicMock()
        with patch("defilens.server.create_server", return_value=fake):
            main(["serve", "--tcp", "--port", "9000"])
        fake.start_tcp.assert_called_once_with("127.0.0.1", 9000)
        fake.start_io.assert_not_called()

    def test_serve_stdio(self) -> None:
        fake = MagicMock()
        with patch("defilens.server.create_server", return_value=fake):
            main(["serve"])
        fake.start_io.assert_called_once()
