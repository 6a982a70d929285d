"""Match service holding the current product index."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable

import structlog

from shelfscan.config import get_settings
from shelfscan.core.barcode_parser import decode_barcode, gtin13_from_gtin14
from shelfscan.core.expiry import ExpiryInfo, resolve_expiry
from shelfscan.core.master_index import GTIN_LENGTH, MasterIndex, build_master_index, normalize_code
from shelfscan.core.matcher import match_product, require_index, smart_match
from shelfscan.core.models import DecodedBarcode, MatchResult, ProductRecord, SmartMatchResult

logger = structlog.get_logger()


class ProductNotFoundError(LookupError):
    """Raised when a catalog edit targets an unknown primary code."""

    pass


@dataclass(frozen=True)
class ScanOutcome:
    """Everything a single scan resolves to."""

    decoded: DecodedBarcode
    match: MatchResult
    expiry: ExpiryInfo


class MatchService:
    """Owns the live MasterIndex and answers scans and searches against it.

    The index is never modified in place. Writers build a complete new index
    and then swap the reference, so a reader always sees one whole version.
    """

    def __init__(self, index: MasterIndex | None = None):
        """Initialize match service.

        Args:
            index: Prebuilt index. If None, a catalog must be loaded first.
        """
        self._index = index
        self._write_lock = threading.Lock()
        self._settings = get_settings().matching

    @property
    def is_ready(self) -> bool:
        return self._index is not None

    @property
    def index(self) -> MasterIndex:
        """The current index.

        Raises:
            IndexNotBuiltError: If no catalog has been loaded yet
        """
        return require_index(self._index)

    def _next_version(self) -> int:
        return self._index.version + 1 if self._index is not None else 1

    def load_catalog(self, records: Iterable[ProductRecord]) -> MasterIndex:
        """Rebuild the index from the full catalog and swap it in."""
        with self._write_lock:
            index = build_master_index(records, version=self._next_version())
            self._index = index
        return index

    def upsert_product(self, record: ProductRecord) -> MasterIndex:
        """Add or replace one product, keyed on its primary code."""
        with self._write_lock:
            base = self._index if self._index is not None else build_master_index([], version=0)
            index = base.with_product(record)
            self._index = index
        logger.info("product_upserted", primary_code=record.primary_code, version=index.version)
        return index

    def remove_product(self, primary_code: str) -> MasterIndex:
        """Remove one product.

        Raises:
            IndexNotBuiltError: If no catalog has been loaded yet
            ProductNotFoundError: If no product has this primary code
        """
        with self._write_lock:
            base = require_index(self._index)
            if base.get(primary_code) is None:
                raise ProductNotFoundError(f"Product not found: {primary_code}")
            index = base.without_product(primary_code)
            self._index = index
        logger.info("product_removed", primary_code=primary_code, version=index.version)
        return index

    def _with_short_code(self, decoded: DecodedBarcode) -> DecodedBarcode:
        """Treat a short digit run as a code when no GTIN was decoded."""
        if decoded.has_gtin:
            return decoded
        digits = normalize_code(decoded.raw)
        if len(digits) < self._settings.short_code_min_digits or len(digits) > GTIN_LENGTH:
            return decoded
        gtin14 = digits.zfill(GTIN_LENGTH)
        return replace(decoded, gtin14=gtin14, gtin13=gtin13_from_gtin14(gtin14))

    def scan(self, barcode_raw: str, today: date | None = None) -> ScanOutcome:
        """Decode a scan, match it to a product and classify its expiry.

        Args:
            barcode_raw: Raw string from the scanner or text input
            today: Reference date for the expiry status

        Raises:
            IndexNotBuiltError: If no catalog has been loaded yet
        """
        index = self.index
        decoded = self._with_short_code(decode_barcode(barcode_raw))
        match = match_product(decoded, index, limit=self._settings.result_limit)
        expiry = resolve_expiry(decoded.expiry, today, self._settings.soon_threshold_days)

        logger.info(
            "scan_resolved",
            gtin14=decoded.gtin14,
            batch=decoded.batch,
            match_kind=match.match_kind.value,
            expiry_status=expiry.status.value,
        )
        return ScanOutcome(decoded=decoded, match=match, expiry=expiry)

    def scan_many(self, text: str, today: date | None = None) -> list[ScanOutcome]:
        """Scan every non-blank line of a pasted block of codes."""
        index = self.index
        outcomes = [self.scan(line, today) for line in text.splitlines() if line.strip()]
        logger.info("bulk_scan_processed", lines=len(outcomes), version=index.version)
        return outcomes

    def search(self, query: str, limit: int | None = None) -> SmartMatchResult:
        """Run the smart dispatcher against the current index."""
        result = smart_match(query, self.index, limit or self._settings.result_limit)
        logger.debug("search_completed", query=query, kind=result.kind.value, results=len(result.results))
        return result


# Global service instance
_service: MatchService | None = None


def get_service() -> MatchService:
    """Get the global match service instance."""
    global _service
    if _service is None:
        _service = MatchService()
    return _service
