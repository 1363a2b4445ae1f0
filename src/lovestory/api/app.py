# src/lovestory/api/app.py
"""
FastAPI application wiring.

Creates the `FastAPI` instance and attaches the routers. Business logic lives in
`lovestory.service` and the engine packages it wires together.

Run locally with:
    uvicorn lovestory.api.app:app --reload
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from lovestory.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="LoveStory Geo API", version="0.1.0")

# Configure via env: LOVESTORY_CORS_ORIGINS="https://app.example,http://localhost:3000"
cors_origins = [s.strip() for s in os.getenv("LOVESTORY_CORS_ORIGINS", "").split(",") if s.strip()]
if cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
