"""API Layer: FastAPI routes, error handlers and the request lifecycle.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - Delayed queries flushed once the response has been produced

Design Decisions:
    - Thin routes delegate to the Database facade
"""
