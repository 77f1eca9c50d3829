from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from comptrack.cli import cli
from comptrack.index import ComponentIndex


def _touch(root: Path, *paths: str) -> None:
    for rel in paths:
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(rel, encoding="utf-8")


def test_add_and_status(tmp_path: Path, monkeypatch) -> None:
    _touch(tmp_path, "src/button/index.js", "src/button/index.spec.js")
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["--root", str(tmp_path), "add", "src/button", "-n", "ui", "-t", "{dir}/{name}.spec.js"],
    )
    assert result.exit_code == 0, result.output
    assert "tracking 2 files as ui/button" in result.output
    assert ComponentIndex.load(tmp_path).lookup_by_id("ui/button") is not None

    status = runner.invoke(cli, ["--root", str(tmp_path), "status"])
    assert status.exit_code == 0, status.output
    assert "ui/button\tAUTHORED\t2\tsrc/button/index.js" in status.output

    filtered = runner.invoke(cli, ["--root", str(tmp_path), "status", "--origin", "nested"])
    assert "no components tracked" in filtered.output


def test_add_reports_domain_errors(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    result = CliRunner().invoke(cli, ["--root", str(tmp_path), "add", "missing.js"])
    assert result.exit_code == 1
    assert "missing.js was not found" in result.output


def test_add_prints_warnings(tmp_path: Path, monkeypatch) -> None:
    _touch(tmp_path, "shared.js", "button.js")
    monkeypatch.chdir(tmp_path)
    runner = CliRunner()
    runner.invoke(cli, ["--root", str(tmp_path), "add", "shared.js", "-i", "ui/shared"])

    result = runner.invoke(
        cli,
        ["--root", str(tmp_path), "add", "button.js", "shared.js", "-i", "ui/button", "-m", "button.js"],
    )

    assert result.exit_code == 0, result.output
    assert "tracking 1 file as ui/button" in result.output
    assert "already tracked by ui/shared" in result.output
