"""
Pytest configuration and fixtures for paged FHIR search tests.

Provides bundle builders, a mocked search executor and environment cleanup.
"""

import os
from unittest.mock import Mock

import pytest

from fhir_paging.application.page_size import PageSizePolicy
from fhir_paging.domain.interfaces import SearchExecutor
from fhir_paging.domain.models import INCLUDE, MATCH, Entry, PageSizeConfig, ResultEnvelope


def _resource(kind, rid, **fields):
    data = {"resourceType": kind, "id": rid}
    data.update(fields)
    return data


@pytest.fixture
def make_bundle():
    """Builder for raw FHIR searchset bundles (JSON dicts)."""
    def build(kind, ids, total=None, next_url=None, included=(), bundle_id="b-1"):
        entries = [{"resource": _resource(kind, rid), "search": {"mode": "match"}} for rid in ids]
        entries.extend({"resource": r, "search": {"mode": "include"}} for r in included)
        bundle = {
            "resourceType": "Bundle",
            "id": bundle_id,
            "type": "searchset",
            "total": len(ids) if total is None else total,
            "entry": entries,
            "link": [{"relation": "self", "url": f"http://fhir.test/{kind}"}],
        }
        if next_url:
            bundle["link"].append({"relation": "next", "url": next_url})
        return bundle
    return build


@pytest.fixture
def make_envelope():
    """Builder for decoded ResultEnvelopes."""
    def build(kind, ids, total=None, continuation=None, included=(), resources=None):
        resources = resources or {}
        entries = [Entry(kind, rid, resources.get(rid, _resource(kind, rid)), MATCH) for rid in ids]
        entries.extend(Entry(r["resourceType"], r["id"], r, INCLUDE) for r in included)
        return ResultEnvelope(
            entries=tuple(entries),
            total=len(ids) if total is None else total,
            continuation=continuation,
            bundle_id="b-1",
            resource_kind=kind,
        )
    return build


@pytest.fixture
def mock_executor():
    """Mock search executor for testing."""
    return Mock(spec=SearchExecutor)


@pytest.fixture
def policy():
    """Page size policy with the stock 20/50 limits and a tighter Task table."""
    return PageSizePolicy(
        {"Task": PageSizeConfig(default_size=10, max_size=30)},
        PageSizeConfig(default_size=20, max_size=50),
    )


@pytest.fixture
def clean_environment(tmp_path, monkeypatch):
    """Clean FHIR/FIS environment variables and run from an empty directory."""
    for var in list(os.environ):
        if var.startswith("FIS_") or var == "FHIR_SERVER_URL":
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "cli: mark test as CLI command test")
    config.addinivalue_line("markers", "env: mark test as environment-related test")
