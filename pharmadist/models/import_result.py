from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Import result models.

ImportResult aggregates what one spreadsheet (or row batch) import did: how
many rows were read and normalized, how many reached the store, and how the
chunked bulk inserts performed.
"""


class ImportStatus(Enum):
    """Outcome of an import run.

    - SUCCESS: every chunk was inserted
    - PARTIAL: some chunks were inserted before a chunk failed
    - FAILED: nothing was inserted
    """
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass(frozen=True)
class ChunkStat:
    """Per-chunk insert statistics."""
    index: int  # 0-based chunk position
    size: int  # rows handed to bulk_insert
    elapsed_seconds: float
    ok: bool = True


@dataclass(frozen=True)
class ImportResult:
    """Aggregated results and summary metrics for one import run."""
    kind: str
    source: str  # file name or "<rows>"
    status: ImportStatus
    total_rows: int  # rows normalized (one per input row)
    inserted_rows: int  # rows accepted by the store
    total_chunks: int
    failed_chunks: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    throughput_rows_per_sec: float
    assigned_ids: list[int] = field(default_factory=list)
    avg_chunk_seconds: float = 0.0
    p95_chunk_seconds: float = 0.0
    chunk_stats: list[ChunkStat] | None = None
    error: str | None = None


class BatchStatsAccumulator:
    """Collects individual chunk timings and derives summary statistics."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 inclusive quantiles
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
