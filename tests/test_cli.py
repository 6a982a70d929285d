import pytest
from typer.testing import CliRunner

from shelfscan.cli import app

runner = CliRunner()


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "master.csv"
    path.write_text(
        "barcode,name,rms\n"
        "06291109120100,Panadol Baby,220219715\n"
        "06291109120117,Panadol Extra,\n"
        "1111111112345678,Collision A,\n"
        "2222222212345678,Collision B,\n",
        encoding="utf-8",
    )
    return path


def test_decode(catalog_file):
    result = runner.invoke(app, ["decode", "(01)06291109120100(17)250200(10)L7", "--today", "2025-01-01"])

    assert result.exit_code == 0
    assert "06291109120100" in result.output
    assert "28/02/2025" in result.output
    assert "L7" in result.output


def test_decode_unrecognized():
    result = runner.invoke(app, ["decode", "hello"])

    assert result.exit_code == 0
    assert "No barcode format recognized" in result.output


def test_decode_bad_today():
    result = runner.invoke(app, ["decode", "06291109120100", "--today", "tomorrow"])

    assert result.exit_code == 1


def test_scan(catalog_file):
    result = runner.invoke(app, ["scan", "06291109120100", "9780000000002", "--catalog", str(catalog_file)])

    assert result.exit_code == 0
    assert "Panadol Baby" in result.output
    assert "Unknown product" in result.output


def test_scan_series_candidates(catalog_file):
    result = runner.invoke(app, ["scan", "0629110912", "-c", str(catalog_file)])

    assert result.exit_code == 0
    assert "2 candidates" in result.output
    assert "Panadol Extra" in result.output


def test_search(catalog_file):
    result = runner.invoke(app, ["search", "panadol", "--catalog", str(catalog_file)])

    assert result.exit_code == 0
    assert "name" in result.output
    assert "Panadol Baby" in result.output
    assert "Panadol Extra" in result.output


def test_search_no_match(catalog_file):
    result = runner.invoke(app, ["search", "xyz999", "--catalog", str(catalog_file)])

    assert result.exit_code == 0
    assert "No match" in result.output


def test_catalog_stats(catalog_file):
    result = runner.invoke(app, ["catalog-stats", "--catalog", str(catalog_file)])

    assert result.exit_code == 0
    assert "Products: 4" in result.output
    assert "Ambiguous 8-digit suffixes: 1" in result.output


def test_missing_catalog_file(tmp_path):
    result = runner.invoke(app, ["search", "panadol", "--catalog", str(tmp_path / "nope.csv")])

    assert result.exit_code == 1
    assert "Error loading catalog" in result.output


def test_catalog_without_code_column(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("name\nPanadol\n", encoding="utf-8")

    result = runner.invoke(app, ["search", "panadol", "--catalog", str(path)])

    assert result.exit_code == 1
    assert "No barcode column" in result.output


def test_no_catalog_configured(monkeypatch):
    monkeypatch.delenv("CATALOG_PATH", raising=False)

    result = runner.invoke(app, ["search", "panadol"])

    assert result.exit_code == 1
    assert "No catalog given" in result.output
