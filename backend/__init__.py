"""
backend — FastAPI application package.

Routers: api/ask.py, api/health.py
Dependencies: api/deps.py
Schemas: schemas/response.py
Entry point: main.py → run with `uvicorn backend.main:app --reload`
"""
