"""Database models."""

from clinic_scheduling.models.appointments import appointments, metadata
from clinic_scheduling.models.doctors import doctors
from clinic_scheduling.models.patients import patients

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "patients",
]
