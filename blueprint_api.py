"""
Certification Blueprint API - Main Application
FastAPI application for the certification admin back-office.
Manages certifications, their domain/objective/bullet blueprints,
bulk blueprint import/export and AI blueprint extraction.
"""

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import os

from database.database import engine, Base
from routers import blueprints, bullets, certifications, domains, objectives

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s  %(levelname)s  %(name)s  %(message)s",
)
log = logging.getLogger("blueprint_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables."""
    Base.metadata.create_all(bind=engine)
    log.info("Database tables ready")
    yield


app = FastAPI(
    title="Certification Blueprint API",
    description="Certification catalogue, exam blueprints, bulk import/export and AI extraction",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─── Routers ───────────────────────────────────────────────────────────────────

# Catalogue
app.include_router(certifications.router)     # /certifications/*

# Blueprint
app.include_router(blueprints.router)         # /certifications/{id}/blueprint/*
app.include_router(domains.router)            # /domains/*
app.include_router(objectives.router)         # /objectives/*
app.include_router(bullets.router)            # /bullets/*, /sub-bullets/*


@app.get("/")
def root():
    return {
        "name": "Certification Blueprint API",
        "version": "1.0.0",
        "endpoints": {
            "docs": "/docs",
            "certifications": "/certifications",
            "blueprint": "/certifications/{id}/blueprint",
            "domains": "/domains",
            "objectives": "/objectives",
        },
    }


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": "certification-blueprint-api"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8001")))
