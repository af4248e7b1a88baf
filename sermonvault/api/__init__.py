"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application under settings.API_PREFIX.
"""

from fastapi import APIRouter

from sermonvault.api.routes import auth, chat, pdf, process_sermon, sermons, upload

# Create main API router
api_router = APIRouter()

# Authentication
api_router.include_router(auth.router)

# Ingestion pipeline
api_router.include_router(upload.router)
api_router.include_router(process_sermon.router)

# Sermons and their files
api_router.include_router(sermons.router)
api_router.include_router(pdf.router)

# Chat
api_router.include_router(chat.router)
