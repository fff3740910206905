"""Existence checks for patients and doctors referenced by appointments."""

from uuid import UUID

from sqlalchemy import Table, exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduling.core.redis_client import CacheManager
from clinic_scheduling.models.doctors import doctors
from clinic_scheduling.models.patients import patients


class ReferenceDirectory:
    """
    Answers whether a patient or doctor exists.

    Only positive answers are cached: a record created after a miss is
    visible immediately.
    """

    DEFAULT_CACHE_TTL = 300  # 5 minutes

    def __init__(
        self,
        db: AsyncSession,
        cache_manager: CacheManager | None = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
    ):
        """Initialize directory with database session and optional cache manager."""
        self.db = db
        self.cache = cache_manager
        self.cache_ttl = cache_ttl

    @staticmethod
    def _cache_key(kind: str, record_id: UUID) -> str:
        """Generate cache key for a reference record."""
        return f"{kind}:exists:{record_id}"

    async def patient_exists(self, patient_id: UUID) -> bool:
        """Check that a patient exists."""
        return await self._exists("patient", patients, patient_id)

    async def doctor_exists(self, doctor_id: UUID) -> bool:
        """Check that a doctor exists."""
        return await self._exists("doctor", doctors, doctor_id)

    async def _exists(self, kind: str, table: Table, record_id: UUID) -> bool:
        cache_key = self._cache_key(kind, record_id)
        if self.cache and self.cache.get(cache_key) == "1":
            return True

        result = await self.db.execute(select(exists().where(table.c.id == record_id)))
        found = bool(result.scalar())

        if found and self.cache:
            self.cache.set(cache_key, "1", ttl=self.cache_ttl)
        return found
