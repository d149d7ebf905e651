"""Builders for synthetic export.xml documents used across the test suite."""

HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    "<!DOCTYPE HealthData [\n"
    "<!ELEMENT HealthData (ExportDate,Me,(Record|Correlation|Workout)*)>\n"
    "<!ATTLIST HealthData locale CDATA #REQUIRED>\n"
    "]>\n"
)

HEART_RATE = (
    '<Record type="HeartRate" sourceName="Watch" startDate="2023-01-01" '
    'endDate="2023-01-01" value="60" unit="count/min"/>'
)


def record_xml(**attrs) -> str:
    """Build a <Record/> element from keyword attributes, in the given order."""
    rendered = " ".join(f'{k}="{v}"' for k, v in attrs.items())
    return f"<Record {rendered}/>"


def step_record(i: int, **extra) -> dict[str, str]:
    """Attributes of a complete step-count record, numbered for ordering checks."""
    attrs = {
        "type": "HKQuantityTypeIdentifierStepCount",
        "sourceName": "iPhone",
        "sourceVersion": "17.1",
        "unit": "count",
        "creationDate": f"2023-01-{i + 1:02d} 09:00:00 -0500",
        "startDate": f"2023-01-{i + 1:02d} 08:00:00 -0500",
        "endDate": f"2023-01-{i + 1:02d} 08:30:00 -0500",
        "value": str(100 + i),
    }
    attrs.update(extra)
    return attrs


def health_data_xml(*children: str, prolog: bool = True) -> str:
    """Wrap child element markup in a HealthData document."""
    body = "\n  ".join(
        ['<ExportDate value="2023-02-01 10:00:00 -0500"/>', '<Me HKCharacteristicTypeIdentifierBiologicalSex="x"/>']
        + list(children)
    )
    doc = f'<HealthData locale="en_US">\n  {body}\n</HealthData>\n'
    return (HEADER + doc) if prolog else doc


