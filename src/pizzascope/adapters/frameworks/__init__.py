"""Framework integrations (ASGI, FastAPI)."""
