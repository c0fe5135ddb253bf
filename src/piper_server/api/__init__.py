"""
FastAPI HTTP Layer for piper-server.

    - routes.py: /api/speak, /api/voices, /api/health, /metrics
    - schemas.py: Request/response Pydantic models
    - dependencies.py: FastAPI dependency injection
"""
