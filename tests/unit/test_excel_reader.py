from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from pharmadist.excel.reader import (
    SheetNotFoundError,
    UnsupportedFileError,
    read_rows,
    read_sheet,
)


def test_first_row_is_header_and_empty_cells_are_absent(temp_workdir: Path, make_excel):
    path = make_excel(
        temp_workdir / "data" / "stock.xlsx",
        [
            ["Name", "Qty", "Batch"],
            ["Crocin", 5, "C1"],
            ["Dolo", None, "D1"],
        ],
    )
    sheet = read_sheet(path)
    assert sheet.sheet_name == "Sheet1"
    assert sheet.columns == ["Name", "Qty", "Batch"]
    assert sheet.rows[0] == {"Name": "Crocin", "Qty": 5, "Batch": "C1"}
    assert sheet.rows[1] == {"Name": "Dolo", "Batch": "D1"}


def test_blank_rows_skipped(temp_workdir: Path, make_excel):
    path = make_excel(
        temp_workdir / "data" / "gaps.xlsx",
        [
            ["Name", "Qty"],
            ["Crocin", 5],
            [None, None],
            ["Dolo", 7],
        ],
    )
    rows = read_rows(path)
    assert [r["Name"] for r in rows] == ["Crocin", "Dolo"]


def test_blank_and_duplicate_headers(temp_workdir: Path, make_excel):
    path = make_excel(
        temp_workdir / "data" / "dups.xlsx",
        [
            ["Name", None, "Name", "Qty"],
            ["Crocin", "ignored", "Crocin Adv", 3],
        ],
    )
    sheet = read_sheet(path)
    assert sheet.columns == ["Name", "Name_1", "Qty"]
    assert sheet.rows == [{"Name": "Crocin", "Name_1": "Crocin Adv", "Qty": 3}]


def test_named_sheet(temp_workdir: Path):
    path = temp_workdir / "data" / "book.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame([["Name"], ["A"]]).to_excel(writer, sheet_name="Stock", header=False, index=False)
        pd.DataFrame([["Party"], ["City Medicals"]]).to_excel(
            writer, sheet_name="Parties", header=False, index=False
        )
    assert read_sheet(path).sheet_name == "Stock"
    parties = read_sheet(path, sheet="Parties")
    assert parties.rows == [{"Party": "City Medicals"}]


def test_missing_sheet(temp_workdir: Path, make_excel):
    path = make_excel(temp_workdir / "data" / "one.xlsx", [["Name"], ["A"]])
    with pytest.raises(SheetNotFoundError):
        read_sheet(path, sheet="Nope")


def test_unsupported_suffix(temp_workdir: Path):
    path = temp_workdir / "data" / "notes.txt"
    path.write_text("Name\nA\n", encoding="utf-8")
    with pytest.raises(UnsupportedFileError):
        read_sheet(path)


def test_csv_rows(temp_workdir: Path):
    path = temp_workdir / "data" / "parties.csv"
    path.write_text("Party,Phone\nCity Medicals,98250\n,\nApollo,\n", encoding="utf-8")
    sheet = read_sheet(path)
    assert sheet.sheet_name == "parties"
    assert sheet.columns == ["Party", "Phone"]
    assert sheet.rows == [{"Party": "City Medicals", "Phone": "98250"}, {"Party": "Apollo"}]


def test_empty_csv(temp_workdir: Path):
    path = temp_workdir / "data" / "empty.csv"
    path.write_text("", encoding="utf-8")
    sheet = read_sheet(path)
    assert sheet.columns == []
    assert sheet.rows == []


def test_keep_na_strings(temp_workdir: Path):
    path = temp_workdir / "data" / "na.csv"
    path.write_text("Name,Mfg\nCrocin,NA\nDolo,N/A\n", encoding="utf-8")

    default_rows = read_rows(path)
    assert default_rows == [{"Name": "Crocin"}, {"Name": "Dolo"}]

    kept = read_rows(path, keep_na_strings=["NA"])
    assert kept == [{"Name": "Crocin", "Mfg": "NA"}, {"Name": "Dolo"}]
