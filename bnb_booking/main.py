# bnb_booking/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bnb_booking.config import ALLOWED_ORIGINS
from bnb_booking.logging_config import setup_logging
from bnb_booking.middleware import RequestIDMiddleware
from bnb_booking.routes.bookings import router as bookings_router
from bnb_booking.routes.channels import router as channels_router
from bnb_booking.routes.health import router as health_router
from bnb_booking.routes.metrics import router as metrics_router
from bnb_booking.routes.payments import router as payments_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="B&B Booking API",
    description="Booking modifications, cancellations, payments and channel manager sync",
    version="1.0.0",
)

app.add_middleware(RequestIDMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(bookings_router, tags=["Bookings"])
app.include_router(payments_router, tags=["Payments"])
app.include_router(channels_router, tags=["Channels"])


@app.on_event("startup")
def startup_event() -> None:
    logger.info("fastapi_startup", allowed_origins=ALLOWED_ORIGINS)
