"""
Main FastAPI application for the Studio Class Scheduling System.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studio_scheduler.api import routes
from studio_scheduler.core.logging_config import setup_logging

setup_logging()

app = FastAPI(
    title="Studio Class Scheduling API",
    description="API for seeding, optimizing and editing weekly studio class schedules",
    version="1.0.0"
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(routes.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Studio Class Scheduling API",
        "version": "1.0.0",
        "endpoints": {
            "schedule": "/api/schedule",
            "seed": "/api/schedule/seed",
            "optimize": "/api/schedule/optimize",
            "fill_gaps": "/api/schedule/fill-gaps",
            "health": "/api/health"
        }
    }
