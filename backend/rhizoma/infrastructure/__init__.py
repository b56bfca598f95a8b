"""Infrastructure Layer: database links, query execution and cross-cutting concerns.

Invariants:
    - All driver exceptions mapped to the RhizomaError hierarchy (core/errors.py)
    - Links owned exclusively by LinkManager

Design Decisions:
    - SQLAlchemy async engine per role: the driver stays an opaque
      "execute query, get rows or error" capability
"""
