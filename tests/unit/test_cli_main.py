from __future__ import annotations

import json
from pathlib import Path

import psycopg2

from pharmadist.cli import main as cli_main
from pharmadist.db import MemoryStore, StoreError


def test_cli_import_success(write_config, stock_sheet: Path, no_db, fresh_logging, capsys):
    code = cli_main(["import", "products", str(stock_sheet)])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO mode=memory table=products inserted_rows=3" in out
    assert "SUMMARY kind=product status=success rows=3 inserted=3 chunks=2 failed_chunks=0" in out


def test_cli_import_chunk_size_override(write_config, stock_sheet: Path, no_db, fresh_logging, capsys):
    code = cli_main(["import", "products", str(stock_sheet), "--chunk-size", "10"])
    assert code == 0
    assert "chunks=1 " in capsys.readouterr().out


def test_cli_config_missing(temp_workdir: Path, no_db, fresh_logging, capsys):
    code = cli_main(["search", "products", "para"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR config: config file not found" in out


def test_cli_import_missing_file(write_config, temp_workdir: Path, no_db, fresh_logging, capsys):
    code = cli_main(["import", "parties", "data/nope.xlsx"])
    out = capsys.readouterr().out
    assert code == 1
    assert "ERROR import: cannot read nope.xlsx" in out

    [log_file] = list((temp_workdir / "logs").glob("errors-*.log"))
    record = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert record["error_type"] == "FILE_READ_ERROR"
    assert record["row"] == -1
    assert record["kind"] == "party"


def test_cli_import_partial_failure(write_config, stock_sheet: Path, no_db, fresh_logging, capsys, monkeypatch):
    import pharmadist.cli.app as app

    class SecondChunkFails(MemoryStore):
        calls = 0

        def bulk_insert(self, records):
            SecondChunkFails.calls += 1
            if SecondChunkFails.calls > 1:
                raise StoreError("disk full")
            return super().bulk_insert(records)

    monkeypatch.setattr(app, "MemoryStore", SecondChunkFails)
    code = cli_main(["import", "products", str(stock_sheet)])
    out = capsys.readouterr().out
    assert code == 2
    assert "status=partial rows=3 inserted=2" in out
    assert "ERROR import stock.xlsx: chunk 1 (rows 3-3) failed: disk full" in out
    assert list((Path("logs")).glob("errors-*.log"))


def test_cli_search_memory_mode(write_config, no_db, fresh_logging, capsys):
    code = cli_main(["search", "products", "para", "--limit", "5"])
    out = capsys.readouterr().out
    assert code == 0
    assert "INFO mode=memory table=products fields=['name', 'batch'] hits=0" in out


def test_cli_search_prints_json_lines(write_config, no_db, fresh_logging, capsys, monkeypatch):
    import pharmadist.cli.app as app

    class SeededStore(MemoryStore):
        def __init__(self):
            super().__init__([{"name": "Paracetamol 500mg", "batch": "B1"}, {"name": "Dolo 650", "batch": "D1"}])

    monkeypatch.setattr(app, "MemoryStore", SeededStore)
    code = cli_main(["search", "products", "para 500"])
    lines = [ln for ln in capsys.readouterr().out.splitlines() if ln.startswith("{")]
    assert code == 0
    assert [json.loads(ln) for ln in lines] == [{"name": "Paracetamol 500mg", "batch": "B1", "id": 1}]


def test_cli_db_failure_falls_back_to_memory(write_config, fresh_logging, capsys, monkeypatch):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)

    def refuse(*args, **kwargs):
        raise psycopg2.OperationalError("connection refused")

    monkeypatch.setattr(psycopg2, "connect", refuse)
    code = cli_main(["search", "parties", ""])
    out = capsys.readouterr().out
    assert code == 0
    assert "DB connection failed -> fallback to memory mode" in out
    assert "mode=memory table=parties" in out


def test_cli_inspect(write_config, stock_sheet: Path, fresh_logging, capsys):
    code = cli_main(["inspect", str(stock_sheet), "--rows", "1"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: stock.xlsx SHEET: Sheet1 rows=3" in out
    assert "Paracetamol 500mg" in out
    assert "Panadol" not in out
    assert "batch           <- Batch No." in out
    assert "stock           <- Qty" in out
    assert "purchaseRate    <- (default / absent)" in out


def test_cli_inspect_unreadable(write_config, temp_workdir: Path, fresh_logging, capsys):
    code = cli_main(["inspect", str(temp_workdir / "data" / "nope.csv")])
    assert code == 1
    assert "inspect: read_error" in capsys.readouterr().out


def test_cli_debug_flag(write_config, no_db, fresh_logging, capsys):
    code = cli_main(["--debug", "search", "products", ""])
    assert code == 0
    assert "DEBUG debug mode enabled" in capsys.readouterr().out
