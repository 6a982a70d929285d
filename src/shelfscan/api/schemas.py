"""Pydantic request/response schemas for Shelfscan API."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from shelfscan.core.expiry import ExpiryInfo
from shelfscan.core.match_service import ScanOutcome
from shelfscan.core.models import (
    DecodedBarcode,
    ExpiryStatus,
    MatchKind,
    MatchResult,
    ProductRecord,
    SmartMatchKind,
    SmartMatchResult,
)


# Request models


class ProductIn(BaseModel):
    """A catalog product as supplied by the catalog collaborator."""

    code: str = Field(..., description="Primary product code (barcode/GTIN)")
    name: str = Field(default="", description="Display name")
    secondary_code: str | None = Field(default=None, description="Alias such as RMS code or SKU")

    def to_record(self) -> ProductRecord:
        return ProductRecord(
            primary_code=self.code,
            display_name=self.name,
            secondary_code=self.secondary_code or None,
        )


class ProductUpdate(BaseModel):
    """Body for upserting a single product under a code from the path."""

    name: str = Field(default="", description="Display name")
    secondary_code: str | None = Field(default=None, description="Alias such as RMS code or SKU")


class CatalogLoadRequest(BaseModel):
    """Request body for replacing the whole catalog."""

    products: list[ProductIn] = Field(..., description="Full catalog in display order")


class ScanRequest(BaseModel):
    """Request body for decode/scan endpoints."""

    barcode_raw: str = Field(..., description="Raw barcode string")
    today: date | None = Field(default=None, description="Reference date for expiry status")


class BulkScanRequest(BaseModel):
    """Request body for scanning several pasted codes at once."""

    text: str = Field(..., description="One barcode per line")
    today: date | None = Field(default=None, description="Reference date for expiry status")


# Response models


class ProductResponse(BaseModel):
    """A catalog product."""

    code: str
    name: str
    secondary_code: str | None = None

    @classmethod
    def from_record(cls, record: ProductRecord) -> "ProductResponse":
        return cls(
            code=record.primary_code,
            name=record.display_name,
            secondary_code=record.secondary_code,
        )


class ExpiryResponse(BaseModel):
    """Resolved expiry date."""

    iso: str
    display: str
    ddmmyy: str
    status: ExpiryStatus
    days_until: int | None = None

    @classmethod
    def from_info(cls, info: ExpiryInfo) -> "ExpiryResponse":
        return cls(
            iso=info.iso,
            display=info.display,
            ddmmyy=info.ddmmyy,
            status=info.status,
            days_until=info.days_until,
        )


class DecodedBarcodeResponse(BaseModel):
    """Fields decoded from a raw scan."""

    raw: str
    gtin14: str
    gtin13: str
    batch: str | None = None
    serial: str | None = None
    quantity: int = Field(ge=1)
    is_structured: bool
    expiry: ExpiryResponse

    @classmethod
    def from_decoded(cls, decoded: DecodedBarcode, expiry: ExpiryInfo) -> "DecodedBarcodeResponse":
        return cls(
            raw=decoded.raw,
            gtin14=decoded.gtin14,
            gtin13=decoded.gtin13,
            batch=decoded.batch,
            serial=decoded.serial,
            quantity=decoded.quantity,
            is_structured=decoded.is_structured,
            expiry=ExpiryResponse.from_info(expiry),
        )


class MatchResponse(BaseModel):
    """Result of a tiered product lookup."""

    match_kind: MatchKind
    product: ProductResponse | None = None
    candidates: list[ProductResponse] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchResponse":
        return cls(
            match_kind=result.match_kind,
            product=ProductResponse.from_record(result.product) if result.product else None,
            candidates=[ProductResponse.from_record(p) for p in result.candidates],
        )


class ScanResponse(BaseModel):
    """Response for a scan: decoded fields plus the product match."""

    decoded: DecodedBarcodeResponse
    match: MatchResponse

    @classmethod
    def from_outcome(cls, outcome: ScanOutcome) -> "ScanResponse":
        return cls(
            decoded=DecodedBarcodeResponse.from_decoded(outcome.decoded, outcome.expiry),
            match=MatchResponse.from_result(outcome.match),
        )


class BulkScanResponse(BaseModel):
    """Response for a bulk scan."""

    outcomes: list[ScanResponse]
    total_scanned: int
    total_matched: int


class SearchResponse(BaseModel):
    """Tagged result of the smart dispatcher."""

    type: SmartMatchKind
    results: list[ProductResponse]

    @classmethod
    def from_result(cls, result: SmartMatchResult) -> "SearchResponse":
        return cls(
            type=result.kind,
            results=[ProductResponse.from_record(p) for p in result.results],
        )


class CatalogResponse(BaseModel):
    """Summary of the current index after a catalog change."""

    version: int
    total_products: int
    indexed_codes: int


class HealthResponse(BaseModel):
    """Response for health check."""

    status: str
    version: str
    index_ready: bool
    total_products: int
