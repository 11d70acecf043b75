from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering for import runs."""


def _format_number(value: float) -> str:
    # integers without decimals, tiny values without scientific notation
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return str(round(value, 3))


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for an import.

    Format:
    SUMMARY kind={kind} status={status} rows={rows} inserted={inserted}
    chunks={chunks} failed_chunks={failed} elapsed_sec={elapsed} throughput_rps={rps}

    Examples:
        >>> from datetime import datetime, timezone
        >>> from pharmadist.models.import_result import ImportStatus
        >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
        >>> r = ImportResult(
        ...     kind="product", source="stock.xlsx", status=ImportStatus.SUCCESS,
        ...     total_rows=1000, inserted_rows=1000, total_chunks=2, failed_chunks=0,
        ...     start_time=t, end_time=t, elapsed_seconds=2.0, throughput_rows_per_sec=500.0,
        ... )
        >>> render_summary_line(r)
        'SUMMARY kind=product status=success rows=1000 inserted=1000 chunks=2 failed_chunks=0 elapsed_sec=2 throughput_rps=500'
    """
    return (
        f"SUMMARY kind={result.kind} "
        f"status={result.status.value} "
        f"rows={result.total_rows} "
        f"inserted={result.inserted_rows} "
        f"chunks={result.total_chunks} "
        f"failed_chunks={result.failed_chunks} "
        f"elapsed_sec={_format_number(result.elapsed_seconds)} "
        f"throughput_rps={_format_number(result.throughput_rows_per_sec)}"
    )
