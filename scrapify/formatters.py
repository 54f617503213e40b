"""Conversion of record sequences to JSON, CSV and XML payloads.

All functions here are pure. CSV and XML use the first record's keys as the
column set, in order; keys that only appear in later records are dropped and
missing keys render empty.
"""

from __future__ import annotations

import csv
import io
import json
import re
from collections.abc import Sequence
from typing import Any

from lxml import etree

from scrapify.common.exceptions import UnsupportedFormatError
from scrapify.data_types import OutputFormat

# Characters XML 1.0 cannot carry, even escaped
_XML_ILLEGAL_CHARS = re.compile(
    "[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]"
)
_XML_NAME_INVALID = re.compile(r"[^A-Za-z0-9_.\-]")


def _is_record_sequence(data: Any) -> bool:
    return isinstance(data, Sequence) and not isinstance(
        data, (str, bytes, bytearray)
    )


def _scalar_text(value: Any) -> str:
    """Render a record value as text for CSV cells and XML elements."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def to_csv(records: Any) -> str:
    """Convert records to CSV text.

    The header row is the first record's keys. Values containing a comma, a
    double quote or a line break are quoted, with embedded quotes doubled.
    Rows are joined with ``\\n`` and there is no trailing newline.

    Args:
        records: Sequence of flat mappings.

    Returns:
        CSV text, or an empty string when there are no records.
    """
    if not _is_record_sequence(records) or len(records) == 0:
        return ""

    headers = list(records[0].keys())
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([_scalar_text(h) for h in headers])
    for record in records:
        writer.writerow([_scalar_text(record.get(h)) for h in headers])
    # Drop the terminator after the last row
    return buffer.getvalue()[:-1]


def _xml_name(key: Any) -> str:
    name = _XML_NAME_INVALID.sub("_", str(key))
    if not name or not (name[0].isalpha() or name[0] == "_"):
        name = "_" + name
    return name


def _xml_names(keys: Sequence[Any]) -> list[str]:
    """Element names for ``keys``, suffixing ``_2``, ``_3``... on collisions.

    Sanitizing can fold distinct keys together (``"a b"`` and ``"a_b"``);
    the first key keeps the plain name.
    """
    names: list[str] = []
    taken: set[str] = set()
    for key in keys:
        base = name = _xml_name(key)
        suffix = 2
        while name in taken:
            name = f"{base}_{suffix}"
            suffix += 1
        taken.add(name)
        names.append(name)
    return names


def _xml_text(value: Any) -> str:
    return _XML_ILLEGAL_CHARS.sub("", _scalar_text(value))


def to_xml(records: Any) -> str:
    """Convert records to XML text.

    Each record becomes ``<item id="index">`` with one child element per key
    of the first record. Text is escaped by the serializer. Keys that
    sanitize to the same element name get a numeric suffix. A value that is
    not a sequence of records is embedded as JSON text inside ``<data>``.

    Args:
        records: Sequence of flat mappings, or any JSON-serializable value.

    Returns:
        XML document text rooted at ``<data>``.
    """
    root = etree.Element("data")

    if not _is_record_sequence(records):
        root.text = _XML_ILLEGAL_CHARS.sub(
            "", json.dumps(records, default=str, ensure_ascii=False)
        )
        return etree.tostring(root, encoding="unicode")

    headers = list(records[0].keys()) if records else []
    names = _xml_names(headers)
    for index, record in enumerate(records):
        item = etree.SubElement(root, "item", id=str(index))
        for key, name in zip(headers, names):
            child = etree.SubElement(item, name)
            child.text = _xml_text(record.get(key))

    return etree.tostring(root, encoding="unicode")


def format_records(records: Any, fmt: OutputFormat | str) -> Any:
    """Serialize records into the requested output format.

    JSON is an identity passthrough: the records are returned unchanged for
    the caller's own JSON encoder.

    Args:
        records: The records to format.
        fmt: Target format.

    Returns:
        The records themselves for JSON, otherwise the encoded text.

    Raises:
        UnsupportedFormatError: If the format is unknown.
    """
    output_format = OutputFormat.parse(fmt)
    if output_format is None:
        raise UnsupportedFormatError(str(fmt))

    match output_format:
        case OutputFormat.JSON:
            return records
        case OutputFormat.CSV:
            return to_csv(records)
        case OutputFormat.XML:
            return to_xml(records)
