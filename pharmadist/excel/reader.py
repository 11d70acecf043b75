from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Spreadsheet reader producing raw rows for the import normalizer.

Layout: the first row is the header, every following row is data. Distributor
stock and party exports use this layout.

Row shape follows the usual sheet-to-JSON conversion:
- fully empty rows are skipped
- empty cells are left out of the row dict (absent key, not None)
- columns with a blank header are dropped
- repeated headers get a numeric suffix ("Name", "Name_1")

.xlsx / .xls are read through pandas.ExcelFile (openpyxl / xlrd engines),
.csv through pandas.read_csv.
"""

__all__ = [
    "ReaderError",
    "UnsupportedFileError",
    "SheetNotFoundError",
    "SheetData",
    "read_sheet",
    "read_rows",
    "SUPPORTED_SUFFIXES",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
SUPPORTED_SUFFIXES = EXCEL_SUFFIXES | {".csv"}


class ReaderError(Exception):
    """Base class for spreadsheet read failures."""


class UnsupportedFileError(ReaderError):
    """Raised for file types the reader does not handle."""


class SheetNotFoundError(ReaderError):
    """Raised when a requested sheet is missing from the workbook."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]


def _na_options(keep_na_strings: list[str] | None) -> dict[str, Any]:
    """Build pandas NA options that leave ``keep_na_strings`` as text (e.g. 'NA')."""
    if not keep_na_strings:
        return {"keep_default_na": True, "na_values": None}
    import pandas._libs.parsers as parsers

    custom_na = parsers.STR_NA_VALUES - set(keep_na_strings)
    return {"keep_default_na": False, "na_values": list(custom_na)}


def _header_names(header_cells: list[Any]) -> list[str | None]:
    names: list[str | None] = []
    seen: dict[str, int] = {}
    for cell in header_cells:
        if pd.isna(cell) or str(cell).strip() == "":
            names.append(None)
            continue
        name = str(cell).strip()
        count = seen.get(name, 0)
        seen[name] = count + 1
        names.append(name if count == 0 else f"{name}_{count}")
    return names


def _to_sheet_data(df: pd.DataFrame, sheet_name: str) -> SheetData:
    if df.shape[0] == 0:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])
    names = _header_names(df.iloc[0].tolist())
    rows: list[dict[str, Any]] = []
    for _, raw in df.iloc[1:].iterrows():
        if raw.isna().all():
            continue
        row: dict[str, Any] = {}
        for name, val in zip(names, raw.tolist(), strict=False):
            if name is None or pd.isna(val):
                continue
            row[name] = val
        if row:
            rows.append(row)
    columns = [n for n in names if n is not None]
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def read_sheet(
    path: Path,
    *,
    sheet: str | None = None,
    keep_na_strings: list[str] | None = None,
) -> SheetData:
    """Read one sheet (first by default) of an Excel or CSV file.

    Parameters
    ----------
    path: spreadsheet path
    sheet: sheet name for workbooks; ignored for CSV
    keep_na_strings: strings pandas would turn into NaN but should stay text
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedFileError(f"unsupported file type: {path.name}")

    na = _na_options(keep_na_strings)
    if suffix == ".csv":
        try:
            df = pd.read_csv(path, header=None, skip_blank_lines=True, **na)
        except pd.errors.EmptyDataError:
            return SheetData(sheet_name=path.stem, columns=[], rows=[])
        return _to_sheet_data(df, path.stem)

    xls = pd.ExcelFile(path)
    names = [str(n) for n in xls.sheet_names]
    if not names:
        raise SheetNotFoundError(f"workbook has no sheets: {path.name}")
    target = names[0] if sheet is None else sheet
    if target not in names:
        raise SheetNotFoundError(f"sheet '{target}' not found in {path.name} (have {names})")
    df = xls.parse(xls.sheet_names[names.index(target)], header=None, **na)
    return _to_sheet_data(df, target)


def read_rows(
    path: Path,
    *,
    sheet: str | None = None,
    keep_na_strings: list[str] | None = None,
) -> list[dict[str, Any]]:
    """Raw rows (header -> cell) of one sheet; see read_sheet."""
    return read_sheet(path, sheet=sheet, keep_na_strings=keep_na_strings).rows
