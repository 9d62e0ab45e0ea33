"""
Unit tests for cache layer.
"""

import pytest

from app.core.cache import CacheManager


@pytest.mark.unit
class TestCacheManager:
    """Test cache manager functionality."""

    def test_build_key(self):
        """Test cache key construction."""
        manager = CacheManager()

        key = manager._build_key("revoked_users", "user-123")
        assert key == "tenantguard:revoked_users:user-123"

    def test_build_key_with_colon(self):
        """Test cache key with existing colons."""
        manager = CacheManager(prefix="test")

        key = manager._build_key("users", "email:test@example.com")
        assert key == "test:users:email:test@example.com"

    def test_unavailable_before_init(self):
        manager = CacheManager()

        assert manager.available is False
        with pytest.raises(RuntimeError):
            manager.client

    async def test_get_degrades_to_miss(self):
        """Without Redis, reads miss instead of raising."""
        manager = CacheManager()

        assert await manager.get("revoked_users", "user-123") is None

    async def test_set_reports_failure(self):
        manager = CacheManager()

        assert await manager.set("revoked_users", "user-123", 1700000000) is False
        assert await manager.delete("revoked_users", "user-123") is False
