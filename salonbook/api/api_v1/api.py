from fastapi import APIRouter
from salonbook.api.api_v1.endpoints import auth, bookings, salons, services

router = APIRouter()

# Include all routers
router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])
router.include_router(services.router, prefix="/services", tags=["Services"])
router.include_router(salons.router, prefix="/salons", tags=["Salons"])
