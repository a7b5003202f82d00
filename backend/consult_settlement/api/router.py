"""
Main API router that includes all route modules.
"""
from fastapi import APIRouter
from consult_settlement.api.routes import consultations, payouts, ratings, settlements

api_router = APIRouter()

# Include all route modules
api_router.include_router(consultations.router)
api_router.include_router(ratings.router)
api_router.include_router(settlements.router)
api_router.include_router(payouts.router)
