"""
Core normalization logic lives here.

Responsibilities:
- payload decoding (bytes -> text)
- CSV rows -> list of header-keyed mappings
- XML element tree -> nested mappings / lists / strings
- JSON passthrough
- format resolution with an auto-detect fallback chain

Every parser returns a fresh tree of plain Python values (dict, list, str and,
for JSON, the decoder's own scalars). Nothing here logs or keeps state.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from charset_normalizer import from_bytes

from .rules import (
    ALLOWED_CONTENT_TYPES,
    ATTRIBUTE_PREFIX,
    AUTO_DETECT_ORDER,
    CSV_DELIMITER,
    CSV_QUOTE,
    URL_EXTENSION_HINTS,
)

CommonValue = Union[None, str, int, float, bool, List[Any], Dict[str, Any]]


class FormatHint(str, Enum):
    CSV = "csv"
    JSON = "json"
    XML = "xml"


class NormalizationError(Exception):
    """Base class for payload normalization failures."""


class MalformedInputError(NormalizationError, ValueError):
    """Content does not parse as the asserted or attempted format."""

    def __init__(self, format: str, reason: str):
        self.format = format
        self.reason = reason
        super().__init__(f"Malformed {format.upper()} input: {reason}")


class UnsupportedFormatError(NormalizationError, ValueError):
    """The declared format matches none of CSV, JSON or XML."""

    def __init__(self, declared: Optional[str]):
        self.declared = declared
        super().__init__(f"Unsupported format: {declared!r}")


def decode_payload(raw: bytes) -> tuple[str, Dict[str, Any]]:
    """
    Decode payload bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - UTF-8 with a BOM decodes as utf-8-sig so parsers never see the BOM.
    - If decode fails, fall back to UTF-8, then to UTF-8 with replacement characters.
    """
    if not raw:
        return "", {"detected": None, "decode_used": "utf-8", "decode_fallback": False}

    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        decode_fallback = True
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            # Last resort: keep going deterministically with replacement characters
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"

    return text, {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
    }


# --- CSV ---

def _strip_quote_layer(value: str) -> str:
    # Only a matched pair counts as quoting; a lone quote is kept.
    if len(value) >= 2 and value.startswith(CSV_QUOTE) and value.endswith(CSV_QUOTE):
        return value[1:-1]
    return value


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into fields.

    A double quote toggles quoting and is dropped, so a doubled ``""`` inside a
    quoted field vanishes rather than becoming a literal quote. Never raises.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for ch in line:
        if ch == CSV_QUOTE:
            in_quotes = not in_quotes
        elif ch == CSV_DELIMITER and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)

    fields.append("".join(current).strip())
    return fields


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Build one mapping per data row, keyed by the header row.

    Rows whose field count differs from the header are dropped silently.
    """
    lines = [line for line in text.split("\n") if line]
    if not lines:
        return []

    headers = [_strip_quote_layer(h.strip()) for h in lines[0].split(CSV_DELIMITER)]
    rows: List[Dict[str, str]] = []

    for line in lines[1:]:
        values = parse_csv_line(line)
        if len(values) != len(headers):
            continue
        rows.append(dict(zip(headers, values)))

    return rows


# --- XML ---

def _local_name(name: str) -> str:
    # ElementTree spells namespaced names as "{uri}local"
    return name.rsplit("}", 1)[-1]


def _element_text(element: ET.Element) -> str:
    return "".join(element.itertext())


def xml_to_value(element: Optional[ET.Element]) -> CommonValue:
    """
    Convert an element subtree to nested dicts, lists and strings.

    Attributes become ``@name`` keys. Children are grouped by local tag name:
    a name seen once maps to the child's value (its bare text when the child
    has no attributes and no children), a repeated name maps to a list of the
    converted children. An element with neither attributes nor children
    becomes its text.

    The tree is walked with an explicit stack, so nesting depth is not bound
    by the interpreter's recursion limit.
    """
    if element is None:
        return None

    converted: Dict[ET.Element, CommonValue] = {}
    stack = [(element, False)]

    while stack:
        node, children_done = stack.pop()
        if not children_done:
            stack.append((node, True))
            stack.extend((child, False) for child in node)
            continue
        converted[node] = _convert_node(node, converted)

    return converted[element]


def _convert_node(element: ET.Element, converted: Dict[ET.Element, CommonValue]) -> CommonValue:
    # Every child of ``element`` is already in ``converted``.
    result: Dict[str, Any] = {}

    for name, value in element.attrib.items():
        result[ATTRIBUTE_PREFIX + _local_name(name)] = value

    groups: Dict[str, List[ET.Element]] = {}
    for child in element:
        groups.setdefault(_local_name(child.tag), []).append(child)

    for tag, children in groups.items():
        if len(children) == 1:
            child = children[0]
            if len(child) or child.attrib:
                result[tag] = converted.pop(child)
            else:
                converted.pop(child)
                result[tag] = _element_text(child)
        else:
            result[tag] = [converted.pop(child) for child in children]

    if not result:
        return _element_text(element)

    return result


def parse_xml(text: str) -> CommonValue:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise MalformedInputError("xml", str(exc)) from exc
    return xml_to_value(root)


# --- JSON ---

def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def parse_json(text: str) -> CommonValue:
    """
    Decode strict JSON. NaN and Infinity are rejected, and decoder limits
    (huge integers, deep nesting) surface as malformed input too.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        raise MalformedInputError("json", str(exc) or type(exc).__name__) from exc


# --- Resolution ---

_PARSERS = {
    FormatHint.CSV: parse_csv,
    FormatHint.JSON: parse_json,
    FormatHint.XML: parse_xml,
}


def coerce_hint(hint: Union[FormatHint, str, None]) -> Optional[FormatHint]:
    if hint is None or isinstance(hint, FormatHint):
        return hint
    if not isinstance(hint, str):
        raise UnsupportedFormatError(hint)
    try:
        return FormatHint(hint.strip().lower())
    except ValueError:
        raise UnsupportedFormatError(hint) from None


def hint_from_content_type(content_type: Optional[str]) -> FormatHint:
    media_type = (content_type or "").split(";", 1)[0].strip().lower()
    if media_type not in ALLOWED_CONTENT_TYPES:
        raise UnsupportedFormatError(content_type)
    return FormatHint(ALLOWED_CONTENT_TYPES[media_type])


def hint_from_url(url: str) -> Optional[FormatHint]:
    """Guess the format from an extension anywhere in the URL, or None to auto-detect."""
    lowered = url.lower()
    for extension, fmt in URL_EXTENSION_HINTS:
        if extension in lowered:
            return FormatHint(fmt)
    return None


def resolve(content: str, hint: Union[FormatHint, str, None] = None) -> CommonValue:
    """
    Parse ``content`` into the common value tree.

    With a hint, only that parser runs and its errors propagate. Without one,
    JSON is tried, then XML, then CSV; the first parser that accepts the
    content wins. CSV accepts anything, so this always returns a value.
    """
    fmt = coerce_hint(hint)
    if fmt is not None:
        return _PARSERS[fmt](content)

    for name in AUTO_DETECT_ORDER[:-1]:
        try:
            return _PARSERS[FormatHint(name)](content)
        except MalformedInputError:
            continue
    return _PARSERS[FormatHint(AUTO_DETECT_ORDER[-1])](content)
