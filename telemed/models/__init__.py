"""Database models."""

from telemed.models.consultations import consultations, payments
from telemed.models.doctors import doctors
from telemed.models.metadata import metadata
from telemed.models.prescriptions import medicines, prescription_items, prescriptions
from telemed.models.slots import availability_slots
from telemed.models.users import profiles, users

__all__ = [
    "availability_slots",
    "consultations",
    "doctors",
    "medicines",
    "metadata",
    "payments",
    "prescription_items",
    "prescriptions",
    "profiles",
    "users",
]
