"""Tabular Emitter: write records as CSV.

Two layouts are supported:

- Fixed schema (``write_fixed``): the header is always FIELD_NAMES and each
  HealthRecord is written in that order, with absent optional fields as
  empty cells.
- Schema-less (``write_schemaless``): the header is the key set of the first
  flat record. Every later row is that record's own values in its own key
  order. Rows are NOT realigned to the header, so records with a different
  key set than the first one produce misaligned columns. Prefer the fixed
  schema unless every record is known to carry identical attributes.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence, TextIO

from healthfold.errors import EmitError, EmptySequenceError, SinkError
from healthfold.models import FIELD_NAMES, HealthRecord

logger = logging.getLogger(__name__)

KEY_ORDERS = ("sorted", "document")


@dataclass
class EmitStats:
    """Row counts from one emit call (header excluded)."""

    rows_written: int = 0
    rows_skipped: int = 0


class _RowWriter:
    """Formats one CSV row at a time so a bad row never reaches the sink half-written."""

    def __init__(self, sink: TextIO):
        self.sink = sink
        self._buffer = io.StringIO()
        self._csv = csv.writer(self._buffer, lineterminator="\n")
        self.stats = EmitStats()

    def _format(self, values: Sequence[str | None]) -> str:
        self._buffer.seek(0)
        self._buffer.truncate()
        self._csv.writerow(values)
        return self._buffer.getvalue()

    def _write(self, line: str) -> None:
        try:
            self.sink.write(line)
        except OSError as e:
            raise SinkError(f"Output stream closed: {e}") from e

    def header(self, names: Sequence[str]) -> None:
        try:
            self._write(self._format(names))
        except (csv.Error, UnicodeEncodeError) as e:
            raise EmitError(f"Cannot write CSV header: {e}") from e

    def row(self, values: Sequence[str | None], label: object) -> None:
        try:
            self._write(self._format(values))
        except (csv.Error, UnicodeEncodeError) as e:
            self.stats.rows_skipped += 1
            logger.warning("Error %s writing record %r; skipping!", e, label)
            return
        self.stats.rows_written += 1

    def finish(self) -> EmitStats:
        try:
            self.sink.flush()
        except OSError as e:
            raise SinkError(f"Output stream closed: {e}") from e
        logger.info("Done writing records!")
        return self.stats


def write_fixed(records: Iterable[HealthRecord], sink: TextIO) -> EmitStats:
    """Write the fixed header and one row per HealthRecord.

    The header is written even when there are no records.
    """
    writer = _RowWriter(sink)
    writer.header(FIELD_NAMES)
    for record in records:
        writer.row(record.as_row(), record)
    return writer.finish()


def _ordered_items(record: Mapping[str, str], key_order: str) -> list[tuple[str, str]]:
    if key_order == "sorted":
        return sorted(record.items())
    return list(record.items())


def write_schemaless(
    records: Iterable[Mapping[str, str]],
    sink: TextIO,
    key_order: str = "sorted",
) -> EmitStats:
    """Write flat records using the first record's keys as the header.

    Args:
        records: Flat attribute mappings in document order.
        sink: Text stream to write to.
        key_order: "sorted" orders every record's keys lexicographically;
            "document" keeps each record's attribute order from the source.

    Raises:
        EmptySequenceError: There are no records to derive a header from.
            Nothing is written in that case.
    """
    if key_order not in KEY_ORDERS:
        raise ValueError(f"key_order must be one of {KEY_ORDERS}, got {key_order!r}")

    it = iter(records)
    first = next(it, None)
    if first is None:
        raise EmptySequenceError("No records found; cannot derive a CSV header")

    writer = _RowWriter(sink)
    items = _ordered_items(first, key_order)
    writer.header([k for k, _ in items])
    writer.row([v for _, v in items], first)
    for record in it:
        writer.row([v for _, v in _ordered_items(record, key_order)], record)
    return writer.finish()
