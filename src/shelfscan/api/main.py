"""FastAPI application for Shelfscan."""

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from shelfscan import __version__
from shelfscan.api.schemas import (
    BulkScanRequest,
    BulkScanResponse,
    CatalogLoadRequest,
    CatalogResponse,
    DecodedBarcodeResponse,
    HealthResponse,
    ProductResponse,
    ProductUpdate,
    ScanRequest,
    ScanResponse,
    SearchResponse,
)
from shelfscan.config import get_settings
from shelfscan.core.barcode_parser import decode_barcode
from shelfscan.core.expiry import resolve_expiry
from shelfscan.core.master_index import MasterIndex, normalize_code
from shelfscan.core.match_service import ProductNotFoundError, get_service
from shelfscan.core.matcher import IndexNotBuiltError
from shelfscan.core.models import ProductRecord

logger = structlog.get_logger()

app = FastAPI(
    title="Shelfscan API",
    description="Barcode decoding and product matching for expiry tracking",
    version=__version__,
)

# CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _catalog_response(index: MasterIndex) -> CatalogResponse:
    return CatalogResponse(
        version=index.version,
        total_products=len(index.products),
        indexed_codes=len(index.exact_by_code),
    )


@app.get("/api/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint with index readiness."""
    service = get_service()
    return HealthResponse(
        status="ok",
        version=__version__,
        index_ready=service.is_ready,
        total_products=len(service.index.products) if service.is_ready else 0,
    )


@app.put("/api/catalog", response_model=CatalogResponse)
async def load_catalog(request: CatalogLoadRequest) -> CatalogResponse:
    """Replace the catalog and rebuild the index."""
    index = get_service().load_catalog(p.to_record() for p in request.products)
    return _catalog_response(index)


@app.put("/api/catalog/{primary_code}", response_model=ProductResponse)
async def upsert_product(primary_code: str, request: ProductUpdate) -> ProductResponse:
    """Add or replace a single product."""
    record = ProductRecord(
        primary_code=primary_code,
        display_name=request.name,
        secondary_code=request.secondary_code or None,
    )
    if not normalize_code(primary_code) and not (record.secondary_code or "").strip():
        raise HTTPException(status_code=422, detail=f"Product has no usable code: {primary_code}")
    get_service().upsert_product(record)
    return ProductResponse.from_record(record)


@app.delete("/api/catalog/{primary_code}", response_model=CatalogResponse)
async def remove_product(primary_code: str) -> CatalogResponse:
    """Remove a single product."""
    try:
        index = get_service().remove_product(primary_code)
    except IndexNotBuiltError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ProductNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _catalog_response(index)


@app.post("/api/decode", response_model=DecodedBarcodeResponse)
async def decode(request: ScanRequest) -> DecodedBarcodeResponse:
    """Decode a barcode without matching it against the catalog."""
    settings = get_settings().matching
    decoded = decode_barcode(request.barcode_raw)
    expiry = resolve_expiry(decoded.expiry, request.today, settings.soon_threshold_days)
    return DecodedBarcodeResponse.from_decoded(decoded, expiry)


@app.post("/api/scan", response_model=ScanResponse)
async def scan(request: ScanRequest) -> ScanResponse:
    """Decode a barcode and resolve it to a catalog product.

    Unknown products are not an error; the match kind is NONE.
    """
    try:
        outcome = get_service().scan(request.barcode_raw, today=request.today)
    except IndexNotBuiltError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return ScanResponse.from_outcome(outcome)


@app.post("/api/scan/bulk", response_model=BulkScanResponse)
async def scan_bulk(request: BulkScanRequest) -> BulkScanResponse:
    """Scan several codes pasted one per line."""
    try:
        outcomes = get_service().scan_many(request.text, today=request.today)
    except IndexNotBuiltError as e:
        raise HTTPException(status_code=409, detail=str(e))

    responses = [ScanResponse.from_outcome(o) for o in outcomes]
    return BulkScanResponse(
        outcomes=responses,
        total_scanned=len(responses),
        total_matched=sum(1 for o in outcomes if o.match.found),
    )


@app.get("/api/search", response_model=SearchResponse)
async def search(q: str, limit: int | None = None) -> SearchResponse:
    """Match typed or scanned input by barcode, then by name."""
    if limit is not None and limit < 1:
        raise HTTPException(status_code=400, detail="limit must be at least 1")
    try:
        result = get_service().search(q, limit=limit)
    except IndexNotBuiltError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return SearchResponse.from_result(result)
