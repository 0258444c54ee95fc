"""API router configuration."""

from fastapi import APIRouter

from telemed.api.endpoints import (
    auth,
    consultations,
    doctors,
    medicines,
    prescriptions,
    slots,
)

api_router = APIRouter()

# Include routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["Doctors"])
api_router.include_router(slots.router, prefix="/slots", tags=["Slots"])
api_router.include_router(consultations.router, prefix="/consultations", tags=["Consultations"])
api_router.include_router(prescriptions.router, prefix="/prescriptions", tags=["Prescriptions"])
api_router.include_router(medicines.router, prefix="/medicines", tags=["Medicines"])
