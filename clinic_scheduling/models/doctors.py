"""Doctor reference table using SQLAlchemy Core."""

from sqlalchemy import Column, String, Table, Text, Uuid

from clinic_scheduling.models.appointments import metadata
from clinic_scheduling.models.types import UtcDateTime

doctors = Table(
    "doctors",
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("full_name", Text, nullable=False),
    Column("specialty", String(200), nullable=True),
    Column("created_at", UtcDateTime, nullable=False),
)
