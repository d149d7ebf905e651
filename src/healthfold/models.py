"""Fixed record schema for health export Record entries.

A Record element carries all of its data as attributes. HealthRecord keeps
the nine attributes healthfold exports and drops everything else
(e.g. MetadataEntry children never reach this far). Optional fields are
None when the attribute is absent, which is distinct from an empty string.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

from healthfold.errors import MissingFieldError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldSpec:
    """One column of the fixed schema and the attribute it is read from."""

    name: str  # CSV column / HealthRecord attribute
    key: str  # XML attribute name
    required: bool = False


FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("data_type", "type", required=True),
    FieldSpec("unit", "unit"),
    FieldSpec("value", "value"),
    FieldSpec("source_name", "sourceName", required=True),
    FieldSpec("source_version", "sourceVersion"),
    FieldSpec("device", "device"),
    FieldSpec("creation_date", "creationDate"),
    FieldSpec("start_date", "startDate", required=True),
    FieldSpec("end_date", "endDate", required=True),
)

FIELD_NAMES: tuple[str, ...] = tuple(f.name for f in FIELDS)
REQUIRED_KEYS: tuple[str, ...] = tuple(f.key for f in FIELDS if f.required)


@dataclass(frozen=True)
class HealthRecord:
    """A single Record entry projected onto the fixed schema."""

    data_type: str  # HKQuantityTypeIdentifierHeartRate, ...
    source_name: str
    start_date: str  # as exported, e.g. "2023-01-01 08:00:00 -0500"
    end_date: str
    unit: str | None = None
    value: str | None = None
    source_version: str | None = None
    device: str | None = None
    creation_date: str | None = None

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, str], index: int | None = None) -> HealthRecord:
        """Build a HealthRecord, raising MissingFieldError if a required key is absent."""
        result = validate_record(attributes, index=index)
        if result.record is None:
            raise MissingFieldError(result.missing, index=index)
        return result.record

    def as_row(self) -> list[str | None]:
        """Field values in FIELD_NAMES order."""
        return [getattr(self, name) for name in FIELD_NAMES]


@dataclass
class Projection:
    """Outcome of projecting one flat record: a HealthRecord or the missing keys."""

    record: HealthRecord | None = None
    missing: list[str] = field(default_factory=list)
    index: int | None = None  # position among Record elements, 0-based

    @property
    def ok(self) -> bool:
        return self.record is not None


def validate_record(attributes: Mapping[str, str], index: int | None = None) -> Projection:
    """Project a flat attribute mapping onto the fixed schema.

    Unrecognized attributes are dropped. Missing optional attributes become
    None. Never raises for missing required attributes: they are reported
    in ``Projection.missing`` instead.
    """
    missing = [key for key in REQUIRED_KEYS if key not in attributes]
    if missing:
        return Projection(missing=missing, index=index)
    values = {f.name: attributes.get(f.key) for f in FIELDS}
    return Projection(record=HealthRecord(**values), index=index)


def project_records(
    flat_records: Iterable[Mapping[str, str]],
    strict: bool = False,
    failures: list[Projection] | None = None,
) -> Iterator[HealthRecord]:
    """Project flat records onto HealthRecord, in order.

    Args:
        flat_records: Attribute mappings in document order.
        strict: If True, the first record missing a required attribute
            raises MissingFieldError and ends the run. Otherwise the record
            is skipped with a warning and projection continues.
        failures: Optional list that collects each skipped Projection.
    """
    for i, attributes in enumerate(flat_records):
        result = validate_record(attributes, index=i)
        if result.record is not None:
            yield result.record
            continue
        if strict:
            raise MissingFieldError(result.missing, index=i)
        logger.warning(
            "Skipping Record #%d (%s): missing required attribute(s) %s",
            i, attributes.get("type", "<no type>"), ", ".join(result.missing),
        )
        if failures is not None:
            failures.append(result)

