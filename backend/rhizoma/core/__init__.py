"""Core Layer: pure domain logic, no IO, no async, no DB driver.

Invariants:
    - No module in core/ imports from infrastructure/ or api/
    - Randomized endpoint selection is the only non-deterministic function

Design Decisions:
    - Functional core separated from imperative shell: cache keys, script parsing
      and config resolution are testable without a database
"""
