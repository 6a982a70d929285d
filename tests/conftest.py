"""Shared fixtures for Shelfscan tests."""

import pytest

from shelfscan.core import match_service
from shelfscan.core.master_index import build_master_index
from shelfscan.core.match_service import MatchService
from shelfscan.core.models import ProductRecord


@pytest.fixture
def catalog() -> list[ProductRecord]:
    return [
        ProductRecord("06291109120100", "Panadol Baby & Infant 100ml", "220219715"),
        ProductRecord("06291109120117", "Panadol Extra 24 Tabs"),
        ProductRecord("5000158062528", "Telfast 180mg 15 Tabs", "SKU-TEL180"),
        ProductRecord("40084701", "Nivea Lip Care"),
    ]


@pytest.fixture
def index(catalog):
    return build_master_index(catalog)


@pytest.fixture
def service(catalog) -> MatchService:
    svc = MatchService()
    svc.load_catalog(catalog)
    return svc


@pytest.fixture
def fresh_global_service(monkeypatch) -> MatchService:
    """Replace the process-wide service with an empty one."""
    svc = MatchService()
    monkeypatch.setattr(match_service, "_service", svc)
    return svc
