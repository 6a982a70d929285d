"""Barcode decoding and product matching core for Shelfscan."""

from shelfscan.core.barcode_parser import decode_barcode
from shelfscan.core.expiry import ExpiryInfo, parse_expiry, resolve_expiry
from shelfscan.core.master_index import MasterIndex, build_master_index
from shelfscan.core.matcher import (
    IndexNotBuiltError,
    match_exact,
    match_product,
    match_series,
    smart_match,
)
from shelfscan.core.models import (
    DecodedBarcode,
    ExpiryStatus,
    MatchKind,
    MatchResult,
    ProductRecord,
    ScoredProduct,
    SmartMatchKind,
    SmartMatchResult,
)
from shelfscan.core.name_search import match_by_name

__all__ = [
    "DecodedBarcode",
    "ExpiryInfo",
    "ExpiryStatus",
    "IndexNotBuiltError",
    "MasterIndex",
    "MatchKind",
    "MatchResult",
    "ProductRecord",
    "ScoredProduct",
    "SmartMatchKind",
    "SmartMatchResult",
    "build_master_index",
    "decode_barcode",
    "match_by_name",
    "match_exact",
    "match_product",
    "match_series",
    "parse_expiry",
    "resolve_expiry",
    "smart_match",
]
