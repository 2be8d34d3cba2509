"""
Tests for SiteStatsService.
"""

import pytest


class TestVisits:
    """Tests for the visit counter."""

    @pytest.mark.asyncio
    async def test_starts_at_zero(self, site_stats_service):
        """A fresh database reports no visits."""
        assert await site_stats_service.get_visits() == 0

    @pytest.mark.asyncio
    async def test_increment_is_monotonic(self, site_stats_service):
        """Each increment returns the new total."""
        counts = [await site_stats_service.increment_visits() for _ in range(3)]

        assert counts == [1, 2, 3]
        assert await site_stats_service.get_visits() == 3
