"""Tiered product matching and the smart dispatcher."""

from __future__ import annotations

import re

import structlog

from shelfscan.core.barcode_parser import decode_barcode
from shelfscan.core.master_index import SUFFIX_LENGTH, MasterIndex, normalize_code
from shelfscan.core.models import (
    DecodedBarcode,
    MatchKind,
    MatchResult,
    ProductRecord,
    SmartMatchKind,
    SmartMatchResult,
)
from shelfscan.core.name_search import DEFAULT_LIMIT, match_by_name

logger = structlog.get_logger()

# Stripping zeros off shorter codes collides too easily on numeric noise
MIN_STRIPPED_DIGITS = 5

_BARCODE_SHAPED = re.compile(r"[0-9]+")

NO_MATCH = MatchResult()


class IndexNotBuiltError(RuntimeError):
    """Raised when matching is attempted before a catalog was indexed."""

    pass


def require_index(index: MasterIndex | None) -> MasterIndex:
    """Return ``index`` or fail fast when no index has been built yet."""
    if index is None:
        raise IndexNotBuiltError("Product index not built. Load a catalog before matching.")
    return index


def _as_decoded(query: DecodedBarcode | str) -> DecodedBarcode:
    if isinstance(query, DecodedBarcode):
        return query
    return decode_barcode(query)


def _exact_keys(decoded: DecodedBarcode) -> list[str]:
    keys = []
    for code in (decoded.gtin14, decoded.gtin13, normalize_code(decoded.raw)):
        if not code:
            continue
        keys.append(code)
        stripped = code.lstrip("0")
        if len(stripped) >= MIN_STRIPPED_DIGITS:
            keys.append(stripped)
    return list(dict.fromkeys(keys))


def _lookup_exact(decoded: DecodedBarcode, index: MasterIndex) -> ProductRecord | None:
    for key in _exact_keys(decoded):
        product = index.exact_by_code.get(key)
        if product is not None:
            return product
    return None


def _lookup_last_eight(decoded: DecodedBarcode, index: MasterIndex) -> ProductRecord | None:
    if not decoded.gtin14:
        return None
    candidates = index.by_last_eight.get(decoded.gtin14[-SUFFIX_LENGTH:], ())
    if len(candidates) > 1:
        logger.debug(
            "last_eight_ambiguous",
            suffix=decoded.gtin14[-SUFFIX_LENGTH:],
            candidates=len(candidates),
        )
        return None
    return candidates[0] if candidates else None


def _series_candidates(code: str, index: MasterIndex, limit: int) -> list[ProductRecord]:
    results: list[ProductRecord] = []
    if not code or limit <= 0:
        return results
    for product in index.products:
        catalog_code = normalize_code(product.primary_code)
        if catalog_code and (catalog_code.startswith(code) or code.startswith(catalog_code)):
            results.append(product)
            if len(results) >= limit:
                break
    return results


def match_exact(code: DecodedBarcode | str, index: MasterIndex | None) -> ProductRecord | None:
    """Find the product registered under any normalized form of ``code``.

    Examples:
        >>> from shelfscan.core.master_index import build_master_index
        >>> index = build_master_index([ProductRecord("06291109120100", "Panadol")])
        >>> match_exact("06291109120100", index).display_name
        'Panadol'
    """
    return _lookup_exact(_as_decoded(code), require_index(index))


def match_series(
    code: str,
    index: MasterIndex | None,
    limit: int = DEFAULT_LIMIT,
) -> list[ProductRecord]:
    """Find products whose code is a prefix of ``code`` or extends it.

    Covers scanners that cut a code short or append to it. Results keep
    catalog order and stop at ``limit``.
    """
    index = require_index(index)
    return _series_candidates(normalize_code(code.strip()), index, limit)


def match_product(
    query: DecodedBarcode | str,
    index: MasterIndex | None,
    limit: int = DEFAULT_LIMIT,
) -> MatchResult:
    """Resolve a scan to a catalog product.

    Tiers are tried in order and the first hit wins: exact code, secondary
    code, unique last-eight-digit suffix, then series prefix matching for
    unstructured numeric input.

    Args:
        query: Decoded barcode or raw scan string
        index: Current master index
        limit: Maximum candidates reported by the series tier

    Returns:
        MatchResult; ``match_kind`` is NONE when nothing matched

    Raises:
        IndexNotBuiltError: If no index has been built yet
    """
    index = require_index(index)
    decoded = _as_decoded(query)
    raw = decoded.raw.strip()

    product = _lookup_exact(decoded, index)
    if product is not None:
        return MatchResult(MatchKind.EXACT, product, (product,))

    product = index.by_secondary_code.get(raw) if raw else None
    if product is not None:
        return MatchResult(MatchKind.SECONDARY_CODE, product, (product,))

    product = _lookup_last_eight(decoded, index)
    if product is not None:
        return MatchResult(MatchKind.LAST_EIGHT_DIGITS, product, (product,))

    if not decoded.is_structured and _BARCODE_SHAPED.fullmatch(raw):
        candidates = _series_candidates(raw, index, limit)
        if candidates:
            single = candidates[0] if len(candidates) == 1 else None
            return MatchResult(MatchKind.SERIES, single, tuple(candidates))

    logger.debug("no_product_match", barcode=raw)
    return NO_MATCH


def is_barcode_shaped(query: str) -> bool:
    """Whether trimmed input consists of ASCII digits only."""
    return bool(_BARCODE_SHAPED.fullmatch(query.strip()))


def smart_match(
    query: str,
    index: MasterIndex | None,
    limit: int = DEFAULT_LIMIT,
) -> SmartMatchResult:
    """Single entry point for scanned or typed input.

    Digit-only input is tried as an exact barcode, then as a series prefix.
    Anything else, or a barcode that matched nothing, goes to name search.

    Examples:
        >>> from shelfscan.core.master_index import build_master_index
        >>> smart_match("xyz999", build_master_index([ProductRecord("1234567890123", "Panadol")]))
        SmartMatchResult(kind=<SmartMatchKind.NO_MATCH: 'no_match'>, results=[])
    """
    index = require_index(index)
    text = (query or "").strip()

    if is_barcode_shaped(text):
        exact = match_exact(text, index)
        if exact is not None:
            return SmartMatchResult(SmartMatchKind.EXACT_BARCODE, [exact])

        series = match_series(text, index, limit)
        if series:
            return SmartMatchResult(SmartMatchKind.SERIES_BARCODE, series)

    by_name = match_by_name(text, index.products, limit)
    if by_name:
        return SmartMatchResult(SmartMatchKind.NAME, [hit.product for hit in by_name])

    return SmartMatchResult(SmartMatchKind.NO_MATCH, [])
