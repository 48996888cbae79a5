"""
Adapters Layer - External Interfaces

This package contains adapters for external systems:
- Persistence (durable JSON file, in-memory fallback)
- Rate providers
- HTTP API (FastAPI)
"""
