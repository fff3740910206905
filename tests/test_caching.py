"""Tests for Redis caching of reference lookups."""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
import redis

from clinic_scheduling.core.redis_client import CacheManager
from clinic_scheduling.repositories.reference_directory import ReferenceDirectory


def test_cache_manager_get():
    """Test CacheManager get method."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    mock_redis.get.return_value = None
    assert cache_manager.get("test_key") is None
    mock_redis.get.assert_called_once_with("test_key")

    mock_redis.reset_mock()
    mock_redis.get.return_value = "1"
    assert cache_manager.get("test_key") == "1"


def test_cache_manager_set():
    """Test CacheManager set method with and without TTL."""
    mock_redis = MagicMock()
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.set("test_key", "1") is True
    mock_redis.set.assert_called_once_with("test_key", "1")

    mock_redis.reset_mock()
    assert cache_manager.set("test_key", "1", ttl=300) is True
    mock_redis.setex.assert_called_once_with("test_key", 300, "1")


def test_cache_manager_error_handling():
    """Redis errors degrade to a cache miss instead of failing the caller."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("Redis connection error")
    mock_redis.setex.side_effect = redis.ConnectionError("Redis connection error")
    cache_manager = CacheManager(redis_client=mock_redis)

    assert cache_manager.get("test_key") is None
    assert cache_manager.set("test_key", "1", ttl=60) is False


@pytest.mark.asyncio
async def test_directory_caches_positive_lookups(db_session, doctor_id):
    """A found doctor is cached with the configured TTL."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    directory = ReferenceDirectory(
        db_session, cache_manager=CacheManager(redis_client=mock_redis), cache_ttl=120
    )

    assert await directory.doctor_exists(doctor_id) is True
    mock_redis.get.assert_called_once_with(f"doctor:exists:{doctor_id}")
    mock_redis.setex.assert_called_once_with(f"doctor:exists:{doctor_id}", 120, "1")


@pytest.mark.asyncio
async def test_directory_uses_cache_hit(db_session):
    """A cache hit answers without consulting the database."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = "1"
    directory = ReferenceDirectory(db_session, cache_manager=CacheManager(redis_client=mock_redis))

    # Not in the database, so only the cache can say yes
    assert await directory.patient_exists(uuid4()) is True
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_directory_does_not_cache_misses(db_session):
    """Unknown records are looked up again next time."""
    mock_redis = MagicMock()
    mock_redis.get.return_value = None
    directory = ReferenceDirectory(db_session, cache_manager=CacheManager(redis_client=mock_redis))

    assert await directory.patient_exists(uuid4()) is False
    mock_redis.set.assert_not_called()
    mock_redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_directory_without_cache(db_session, patient_id):
    """Without Redis every lookup goes to the database."""
    directory = ReferenceDirectory(db_session)

    assert await directory.patient_exists(patient_id) is True
    assert await directory.doctor_exists(patient_id) is False


@pytest.mark.asyncio
async def test_directory_survives_redis_outage(db_session, doctor_id):
    """A failing cache falls through to the database."""
    mock_redis = MagicMock()
    mock_redis.get.side_effect = redis.ConnectionError("Redis connection error")
    mock_redis.setex.side_effect = redis.ConnectionError("Redis connection error")
    directory = ReferenceDirectory(db_session, cache_manager=CacheManager(redis_client=mock_redis))

    assert await directory.doctor_exists(doctor_id) is True
