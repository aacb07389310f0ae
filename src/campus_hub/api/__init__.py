"""HTTP API layer (FastAPI app factory and dependency wiring)."""
