from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..config.loader import DEFAULT_CHUNK_SIZE
from ..db.store import RecordStore, StoreError
from ..excel.reader import ReaderError, read_sheet
from ..importer.normalizer import normalize
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.import_result import BatchStatsAccumulator, ChunkStat, ImportResult, ImportStatus
from ..models.records import RecordKind
from .progress import ProgressTracker

"""Import orchestration: read -> normalize -> chunked bulk insert.

The normalizer is pure; this module owns everything around it:
- reading the spreadsheet (first sheet unless named)
- splitting normalized records into chunks (500 by default) so a single
  insert never holds the whole sheet
- timing each chunk and driving the progress bar
- stopping at the first failing chunk; chunks inserted before it stay
  inserted and the failure is written to the error log
"""

logger = logging.getLogger(__name__)

ROWS_SOURCE = "<rows>"


class ImportProcessingError(Exception):
    """Raised when an import cannot start (unreadable file, bad arguments)."""


def _chunks(records: list[dict[str, Any]], size: int) -> Iterable[tuple[int, list[dict[str, Any]]]]:
    for start in range(0, len(records), size):
        yield start, records[start:start + size]


def import_rows(
    rows: Iterable[Mapping[str, Any]],
    kind: RecordKind,
    store: RecordStore,
    *,
    source: str = ROWS_SOURCE,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Normalize ``rows`` as ``kind`` and bulk insert them into ``store``.

    Args:
        rows: Raw rows (header -> value)
        kind: Target schema
        store: Destination store
        source: Label used in logs and error records
        chunk_size: Records per bulk_insert call
        error_log: Buffer receiving a record for a failed chunk

    Returns:
        ImportResult; status PARTIAL / FAILED when a chunk failed
    """
    if chunk_size <= 0:
        raise ImportProcessingError(f"chunk_size must be positive, got {chunk_size}")

    start_time = datetime.now(UTC)
    records = normalize(rows, kind)
    total = len(records)
    logger.info("import %s: %d rows normalized as %s", source, total, kind.value)

    accumulator = BatchStatsAccumulator()
    chunk_stats: list[ChunkStat] = []
    assigned: list[int] = []
    failed_chunks = 0
    error: str | None = None

    with ProgressTracker(total, description=f"Importing {kind.table_key}") as progress:
        for index, (offset, chunk) in enumerate(_chunks(records, chunk_size)):
            t0 = time.perf_counter()
            try:
                ids = store.bulk_insert(chunk)
            except Exception as e:
                elapsed = time.perf_counter() - t0
                chunk_stats.append(ChunkStat(index=index, size=len(chunk), elapsed_seconds=elapsed, ok=False))
                failed_chunks += 1
                error = str(e)
                error_type = "STORE_INSERT_ERROR" if isinstance(e, StoreError) else "UNEXPECTED_ERROR"
                logger.error(
                    "import %s: chunk %d (rows %d-%d) failed: %s",
                    source, index, offset + 1, offset + len(chunk), e,
                )
                if error_log is not None:
                    error_log.append(
                        ErrorRecord.create(
                            file=source,
                            kind=kind.value,
                            row=offset + 1,  # first data row of the chunk
                            error_type=error_type,
                            message=error,
                        )
                    )
                break

            elapsed = time.perf_counter() - t0
            accumulator.add_batch_time(elapsed)
            chunk_stats.append(ChunkStat(index=index, size=len(chunk), elapsed_seconds=elapsed))
            assigned.extend(ids)
            progress.advance(len(chunk))
            progress.set_postfix(chunks=index + 1)
            logger.debug("import %s: chunk %d inserted %d rows", source, index, len(chunk))

    end_time = datetime.now(UTC)
    elapsed_seconds = (end_time - start_time).total_seconds()
    inserted = len(assigned)
    throughput = inserted / elapsed_seconds if elapsed_seconds > 0 else 0.0
    _, avg_chunk, p95_chunk = accumulator.get_stats()

    if failed_chunks == 0:
        status = ImportStatus.SUCCESS
    elif inserted > 0:
        status = ImportStatus.PARTIAL
    else:
        status = ImportStatus.FAILED

    return ImportResult(
        kind=kind.value,
        source=source,
        status=status,
        total_rows=total,
        inserted_rows=inserted,
        total_chunks=len(chunk_stats),
        failed_chunks=failed_chunks,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=elapsed_seconds,
        throughput_rows_per_sec=throughput,
        assigned_ids=assigned,
        avg_chunk_seconds=avg_chunk,
        p95_chunk_seconds=p95_chunk,
        chunk_stats=chunk_stats,
        error=error,
    )


def import_file(
    path: Path,
    kind: RecordKind,
    store: RecordStore,
    *,
    sheet: str | None = None,
    keep_na_strings: list[str] | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Read a spreadsheet and import its rows; see import_rows.

    Raises:
        ImportProcessingError: the file cannot be read
    """
    path = Path(path)
    try:
        sheet_data = read_sheet(path, sheet=sheet, keep_na_strings=keep_na_strings)
    except (ReaderError, OSError, ValueError) as e:
        if error_log is not None:
            error_log.append(
                ErrorRecord.create(
                    file=path.name,
                    kind=kind.value,
                    row=-1,
                    error_type="FILE_READ_ERROR",
                    message=str(e),
                )
            )
        raise ImportProcessingError(f"cannot read {path.name}: {e}") from e

    logger.debug("import %s: sheet=%s columns=%s", path.name, sheet_data.sheet_name, sheet_data.columns)
    return import_rows(
        sheet_data.rows,
        kind,
        store,
        source=path.name,
        chunk_size=chunk_size,
        error_log=error_log,
    )
