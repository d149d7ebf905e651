"""Record Extractor: turn export.xml into flat attribute records.

The export document looks like::

    <HealthData locale="en_US">
      <ExportDate value="..."/>
      <Me .../>
      <Record type="HKQuantityTypeIdentifierHeartRate" sourceName="Watch" .../>
      <Correlation ...><Record .../></Correlation>
      <Workout .../>
    </HealthData>

Only the Record elements that are direct children of HealthData are
extracted. Records nested in a Correlation, and every other element type,
are ignored.
"""

from __future__ import annotations

import logging
import time
from typing import IO, Iterator

from lxml import etree

from healthfold.errors import MissingContainerError, ParseError

logger = logging.getLogger(__name__)

CONTAINER_TAG = "HealthData"
RECORD_TAG = "Record"

# Full exports routinely exceed libxml2's default size limits.
_PARSER_OPTIONS = {"huge_tree": True, "resolve_entities": False, "no_network": True}


def _local_name(element: etree._Element) -> str | None:
    """Tag without namespace, or None for comments and processing instructions."""
    if not isinstance(element.tag, str):
        return None
    return etree.QName(element).localname


def parse_export(text: str) -> etree._Element:
    """Parse export.xml text and return the document element.

    Raises ParseError for malformed or empty input. There is no recovery
    mode: a partially parsed export is never used.
    """
    parser = etree.XMLParser(encoding="utf-8", **_PARSER_OPTIONS)
    start = time.perf_counter()
    logger.info("Parsing XML...")
    try:
        root = etree.fromstring(text.encode("utf-8"), parser)
    except (etree.XMLSyntaxError, ValueError) as e:
        raise ParseError(f"Malformed export XML: {e}") from e
    if root is None:
        raise ParseError("Malformed export XML: no document element")
    logger.info("Parsed XML in %.2fs", time.perf_counter() - start)
    return root


def find_health_data(root: etree._Element) -> etree._Element:
    """Return the HealthData container, which must be the document element."""
    name = _local_name(root)
    if name != CONTAINER_TAG:
        raise MissingContainerError(found=name or str(root.tag), expected=CONTAINER_TAG)
    return root


def iter_record_elements(container: etree._Element) -> Iterator[etree._Element]:
    """Yield the container's direct Record children in document order."""
    for child in container:
        if _local_name(child) == RECORD_TAG:
            yield child


def element_attributes(element: etree._Element) -> dict[str, str]:
    """Flatten an element to its attributes, in source order.

    Text content and child elements are ignored.
    """
    return dict(element.attrib)


def extract_records(text: str) -> list[dict[str, str]]:
    """Parse export.xml text and return every top-level Record as a flat dict."""
    container = find_health_data(parse_export(text))
    records = [element_attributes(el) for el in iter_record_elements(container)]
    logger.info("Read %d records", len(records))
    return records


def iter_export_records(source: IO[bytes]) -> Iterator[dict[str, str]]:
    """Incrementally parse export.xml and yield the same flat records as extract_records.

    Each Record is cleared once its attributes are copied, and processed
    siblings are dropped from the partial tree, so memory stays bounded by
    the largest single top-level element rather than the whole export.

    Raises MissingContainerError as soon as the document element is seen if
    it is not HealthData, and ParseError on malformed markup. Errors raised
    by ``source.read`` propagate unchanged.
    """
    depth = 0
    count = 0
    events = etree.iterparse(source, events=("start", "end"), **_PARSER_OPTIONS)
    try:
        for event, element in events:
            if event == "start":
                if depth == 0:
                    find_health_data(element)
                depth += 1
                continue

            depth -= 1
            if depth != 1:
                continue
            if _local_name(element) == RECORD_TAG:
                count += 1
                yield element_attributes(element)
            element.clear()
            while element.getprevious() is not None:
                del element.getparent()[0]
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed export XML: {e}") from e
    logger.info("Streamed %d records", count)
