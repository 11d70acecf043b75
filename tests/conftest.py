# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from pharmadist.logging.init import reset_logging


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
import:
  chunk_size: 2
  keep_na_strings: ["NA"]
search:
  default_limit: 10
  min_chars: 1
tables:
  products:
    table: products
    search_fields: [name, batch]
  parties:
    table: parties
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "pharmadist.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def fresh_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def no_db(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def _write_excel(path: Path, rows: list[list[object]], sheet: str = "Sheet1") -> Path:
    """Write ``rows`` (first row = header) as a single-sheet workbook."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet, header=False, index=False)
    return path


@pytest.fixture()
def make_excel():
    return _write_excel


@pytest.fixture()
def stock_sheet(temp_workdir: Path) -> Path:
    return _write_excel(
        temp_workdir / "data" / "stock.xlsx",
        [
            ["Product Name", "Mfg", "Batch No.", "Exp", "HSN", "GST %", "M.R.P", "Qty"],
            ["Paracetamol 500mg", "Cipla", "B1", "12/26", "3004", 12, 25.5, 100],
            ["Paracetamol 650mg", "Cipla", "B2", "01/27", "3004", 12, 30, "n/a"],
            ["Panadol", "GSK", "P9", "03/27", "3004", 18, "free", 40],
        ],
    )
