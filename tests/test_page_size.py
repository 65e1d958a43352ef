"""
Unit tests for page size resolution.
"""

import pytest

from fhir_paging.application.page_size import FALLBACK_PAGE_SIZE, PageSizePolicy
from fhir_paging.domain.models import PageSizeConfig


@pytest.mark.unit
class TestPageSizePolicy:
    """Test clamping of requested page sizes."""

    def test_absent_size_uses_default(self, policy):
        """Test that no requested size yields the kind's default."""
        assert policy.resolve(None, "Consent") == 20
        assert policy.resolve(None, "Task") == 10

    def test_size_within_range_is_kept(self, policy):
        """Test that sizes in (0, max] pass through unchanged."""
        assert policy.resolve(1, "Consent") == 1
        assert policy.resolve(50, "Consent") == 50
        assert policy.resolve(30, "Task") == 30

    @pytest.mark.parametrize("requested", [0, -5, 51, 1000])
    def test_out_of_range_size_falls_back_to_default(self, policy, requested):
        """Test that sizes outside (0, max] never raise and resolve to the default."""
        assert policy.resolve(requested, "Consent") == 20

    def test_per_kind_max_applies(self, policy):
        """Test that a kind's own max wins over the global one."""
        assert policy.resolve(40, "Task") == 10
        assert policy.resolve(40, "Consent") == 40

    def test_resolution_is_idempotent(self, policy):
        """Test resolve(resolve(s)) == resolve(s)."""
        for requested in (None, -5, 0, 7, 50, 51):
            once = policy.resolve(requested, "Consent")
            assert policy.resolve(once, "Consent") == once

    def test_unknown_kind_uses_fallback(self):
        """Test that kinds missing from the table use the fallback config."""
        policy = PageSizePolicy({})
        assert policy.config_for("Location") == FALLBACK_PAGE_SIZE
        assert policy.resolve(None, "Location") == 20

    def test_misconfigured_default_is_clamped(self):
        """Test that a default above max never escapes the valid range."""
        policy = PageSizePolicy({"Task": PageSizeConfig(default_size=80, max_size=30)})
        assert policy.resolve(None, "Task") == 30
        assert policy.resolve(-1, "Task") == 30
