"""Compose Archive Reader -> Record Extractor -> Tabular Emitter."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Iterator, TextIO

from healthfold.archive import EXPORT_MEMBER, load_export, open_export
from healthfold.config import ExportConfig
from healthfold.emit import EmitStats, write_fixed, write_schemaless
from healthfold.extract import extract_records, iter_export_records
from healthfold.models import HealthRecord, Projection, project_records

logger = logging.getLogger(__name__)


@dataclass
class ConversionStats:
    """Counts for one conversion run."""

    records_read: int = 0  # top-level Record elements seen
    records_skipped: int = 0  # dropped for missing required attributes
    rows_written: int = 0
    rows_skipped: int = 0  # dropped because the row couldn't be encoded
    elapsed: float = 0.0  # seconds


class _Counter:
    def __init__(self, items: Iterable[dict[str, str]]):
        self._items = items
        self.count = 0

    def __iter__(self) -> Iterator[dict[str, str]]:
        for item in self._items:
            self.count += 1
            yield item


def _primed(items: Iterator[dict[str, str]]) -> Iterator[dict[str, str]]:
    """Pull the first item now so early errors surface before any output."""
    try:
        first = next(items)
    except StopIteration:
        return iter(())
    return itertools.chain([first], items)


def _emit(
    flat_records: Iterable[dict[str, str]],
    sink: TextIO,
    config: ExportConfig,
    failures: list[Projection],
    materialize: bool,
) -> EmitStats:
    if config.mode == "schemaless":
        return write_schemaless(flat_records, sink, key_order=config.key_order)
    records: Iterable[HealthRecord] = project_records(
        flat_records, strict=config.strict, failures=failures
    )
    if materialize:
        records = list(records)
    return write_fixed(records, sink)


def convert(
    path: str,
    sink: TextIO,
    config: ExportConfig | None = None,
    member: str = EXPORT_MEMBER,
) -> ConversionStats:
    """Convert the Record entries of an export archive to CSV on ``sink``.

    By default every stage runs to completion before the next one starts,
    so a fatal extraction or strict-mode projection error leaves the sink
    untouched. With ``config.stream`` records flow from the zip member to
    the sink one at a time; the output is identical, but an error found
    past the first record leaves the rows before it in place.

    Fatal errors propagate as HealthfoldError subclasses.
    """
    config = config or ExportConfig()
    start = time.perf_counter()
    failures: list[Projection] = []

    if config.stream:
        with open_export(path, member) as stream:
            counter = _Counter(iter_export_records(stream))
            emitted = _emit(_primed(iter(counter)), sink, config, failures, materialize=False)
    else:
        text = load_export(path, member)
        flat = extract_records(text)
        del text
        counter = _Counter(flat)
        emitted = _emit(counter, sink, config, failures, materialize=True)

    stats = ConversionStats(
        records_read=counter.count,
        records_skipped=len(failures),
        rows_written=emitted.rows_written,
        rows_skipped=emitted.rows_skipped,
        elapsed=time.perf_counter() - start,
    )
    logger.info(
        "Wrote %d of %d records (%d skipped for missing fields, %d unencodable)",
        stats.rows_written, stats.records_read, stats.records_skipped, stats.rows_skipped,
    )
    logger.info("Done processing in %.2fs", stats.elapsed)
    return stats
