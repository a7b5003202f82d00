"""
FastAPI entrypoint for the consultation settlement service.
"""
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import logging
from consult_settlement.core.config import settings
from consult_settlement.core.errors import (
    ApiError, api_error_handler, request_validation_error_handler, unhandled_error_handler
)
from consult_settlement.api.router import api_router
from consult_settlement.services.payment_gateway import PaymentGatewayError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

app = FastAPI(
    title="Consult Settlement API",
    description="Settlement and payout workflow of paid consultations",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ApiError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)
app.add_exception_handler(PaymentGatewayError, unhandled_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
