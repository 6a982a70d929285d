"""Barcode parsing for Shelfscan.

Scans arrive in three shapes, tried in this order:

1. GS1 element strings with parenthesized Application Identifiers,
   e.g. ``(01)06291109120100(17)250131(10)AB123``
2. Concatenated GS1 element strings as emitted by most 2D scanners,
   e.g. ``01062911091201001725013110AB123``
3. Plain numeric codes (EAN-8, UPC-A, EAN-13, GTIN-14)

Each shape has its own recognizer returning ``DecodedBarcode | None`` so the
formats can be tested in isolation. ``decode_barcode`` never raises.
"""

from __future__ import annotations

import re
from typing import Callable

import structlog

from shelfscan.core.expiry import parse_expiry
from shelfscan.core.models import DecodedBarcode

logger = structlog.get_logger()

GTIN_LENGTH = 14
PLAIN_CODE_MIN_DIGITS = 8

# FNC1 as transmitted by scanners in concatenated element strings
GROUP_SEPARATOR = "\x1d"

# Symbology identifiers some scanners prepend (GS1-128, GS1 DataBar, DataMatrix, QR)
_SYMBOLOGY_PREFIXES = ("]C1", "]e0", "]d2", "]Q3")

# AI -> payload length
FIXED_LENGTH_AIS: dict[str, int] = {
    "01": 14,  # GTIN
    "02": 14,  # GTIN of contained items
    "11": 6,  # production date
    "13": 6,  # packaging date
    "15": 6,  # best before
    "17": 6,  # expiry
}

# AI -> maximum payload length
VARIABLE_LENGTH_AIS: dict[str, int] = {
    "10": 20,  # batch/lot
    "21": 20,  # serial
    "30": 8,  # variable count
    "37": 8,  # count of trade items
}

_NUMERIC_VARIABLE_AIS = frozenset({"30", "37"})

_PAREN_TAG = re.compile(r"\(\d{2}\)")
_PAREN_GTIN = re.compile(r"\(01\)(\d{8,14})(?!\d)")
_PAREN_EXPIRY = re.compile(r"\(17\)(\d{6})")
_PAREN_BATCH = re.compile(r"\(10\)([^(]+)")
_PAREN_SERIAL = re.compile(r"\(21\)([^(]+)")
_PAREN_QUANTITY = re.compile(r"\((30|37)\)(\d+)")

_CONCATENATED_PREFIX = re.compile(r"01\d{14}")
_PLAIN_SEPARATORS = re.compile(r"[\s-]")


def gtin13_from_gtin14(gtin14: str) -> str:
    """Drop exactly one leading zero from a 14-digit GTIN."""
    return gtin14[1:] if gtin14.startswith("0") else gtin14


def _gtin_fields(digits: str) -> dict[str, str]:
    gtin14 = digits.zfill(GTIN_LENGTH)
    return {"gtin14": gtin14, "gtin13": gtin13_from_gtin14(gtin14)}


def _clean(raw: str) -> str:
    code = raw.strip().replace("\r", "").replace("\n", "")
    for prefix in _SYMBOLOGY_PREFIXES:
        if code.startswith(prefix):
            code = code[len(prefix):]
            break
    return code.lstrip(GROUP_SEPARATOR)


def _positive_quantity(value: str) -> int:
    try:
        qty = int(value)
    except ValueError:
        return 1
    return qty if qty > 0 else 1


def parse_parenthesized(code: str) -> DecodedBarcode | None:
    """Recognize ``(AI)value`` element strings.

    The string must open with an AI tag. Batch and serial run until the
    next ``(`` or the end of the string.

    Examples:
        >>> parse_parenthesized("(01)06291109120100(17)250131(10)AB12").batch
        'AB12'
    """
    if not _PAREN_TAG.match(code):
        return None

    fields: dict = {"raw": code, "is_structured": True}

    gtin = _PAREN_GTIN.search(code)
    if gtin:
        fields.update(_gtin_fields(gtin.group(1)))

    expiry = _PAREN_EXPIRY.search(code)
    if expiry:
        fields["expiry"] = parse_expiry(expiry.group(1))

    batch = _PAREN_BATCH.search(code)
    if batch and batch.group(1).strip():
        fields["batch"] = batch.group(1).strip()

    serial = _PAREN_SERIAL.search(code)
    if serial and serial.group(1).strip():
        fields["serial"] = serial.group(1).strip()

    # AI 30 wins over AI 37 when both are present
    quantities = dict(m.groups() for m in _PAREN_QUANTITY.finditer(code))
    qty = quantities.get("30") or quantities.get("37")
    if qty:
        fields["quantity"] = _positive_quantity(qty)

    return DecodedBarcode(**fields)


def _tag_fits(code: str, pos: int) -> bool:
    """Whether a known AI starts at ``pos`` and its payload fits after it."""
    ai = code[pos:pos + 2]
    start = pos + 2
    if ai in FIXED_LENGTH_AIS:
        payload = code[start:start + FIXED_LENGTH_AIS[ai]]
        return len(payload) == FIXED_LENGTH_AIS[ai] and payload.isdigit()
    if ai in _NUMERIC_VARIABLE_AIS:
        return start < len(code) and code[start].isdigit()
    if ai in VARIABLE_LENGTH_AIS:
        return start < len(code) and code[start] != GROUP_SEPARATOR
    return False


def _variable_field_end(code: str, start: int, max_length: int) -> int:
    """Find where a variable-length field starting at ``start`` ends.

    The field runs to the first group separator, or the first later position
    where a recognized AI tag fits, capped at ``max_length``. Values that
    happen to contain such a tag are cut short there.
    """
    limit = min(len(code), start + max_length)
    pos = start + 1
    while pos < limit:
        if code[pos] == GROUP_SEPARATOR or _tag_fits(code, pos):
            return pos
        pos += 1
    return limit


def parse_concatenated(code: str) -> DecodedBarcode | None:
    """Recognize element strings with no separators, starting with AI 01.

    Examples:
        >>> decoded = parse_concatenated("01062911091201001725013110AB12")
        >>> decoded.gtin14, decoded.batch
        ('06291109120100', 'AB12')
    """
    if not _CONCATENATED_PREFIX.match(code):
        return None

    values: dict[str, str] = {}
    pos, end = 0, len(code)
    while pos + 2 <= end:
        if code[pos] == GROUP_SEPARATOR:
            pos += 1
            continue

        ai = code[pos:pos + 2]
        start = pos + 2
        if ai in FIXED_LENGTH_AIS:
            stop = start + FIXED_LENGTH_AIS[ai]
            if stop > end:
                break
        elif ai in VARIABLE_LENGTH_AIS:
            if start >= end:
                break
            stop = _variable_field_end(code, start, VARIABLE_LENGTH_AIS[ai])
        else:
            logger.debug("unknown_application_identifier", ai=ai, position=pos)
            break

        values.setdefault(ai, code[start:stop])
        pos = stop

    fields: dict = {"raw": code, "is_structured": True}
    fields.update(_gtin_fields(values["01"]))

    if "17" in values:
        fields["expiry"] = parse_expiry(values["17"])
    if values.get("10", "").strip():
        fields["batch"] = values["10"].strip()
    if values.get("21", "").strip():
        fields["serial"] = values["21"].strip()

    qty = values.get("30") or values.get("37")
    if qty:
        fields["quantity"] = _positive_quantity(qty)

    return DecodedBarcode(**fields)


def parse_plain_code(code: str) -> DecodedBarcode | None:
    """Recognize a plain 8-14 digit code, ignoring spaces and hyphens.

    Examples:
        >>> parse_plain_code("6291109120100").gtin14
        '06291109120100'
    """
    digits = _PLAIN_SEPARATORS.sub("", code)
    if not (digits.isascii() and digits.isdigit()):
        return None
    if not PLAIN_CODE_MIN_DIGITS <= len(digits) <= GTIN_LENGTH:
        return None
    return DecodedBarcode(raw=code, **_gtin_fields(digits))


RECOGNIZERS: tuple[Callable[[str], DecodedBarcode | None], ...] = (
    parse_parenthesized,
    parse_concatenated,
    parse_plain_code,
)


def decode_barcode(barcode_raw: str) -> DecodedBarcode:
    """Decode a raw scan into its GTIN, batch, serial, quantity and expiry.

    Args:
        barcode_raw: Raw string from a scanner or text input

    Returns:
        DecodedBarcode; every field is empty when no format was recognized

    Examples:
        >>> decode_barcode("(01)06291109120100(17)250200").expiry
        datetime.date(2025, 2, 28)
        >>> decode_barcode("hello").gtin14
        ''
    """
    if not isinstance(barcode_raw, str):
        return DecodedBarcode()

    code = _clean(barcode_raw)
    if not code:
        return DecodedBarcode(raw=code)

    for recognize in RECOGNIZERS:
        decoded = recognize(code)
        if decoded is not None:
            return decoded

    logger.debug("barcode_not_recognized", barcode=code)
    return DecodedBarcode(raw=code)
