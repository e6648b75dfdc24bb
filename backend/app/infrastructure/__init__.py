"""Infrastructure Layer — durable storage, content directory, and observability.

Invariants:
    - Infrastructure may import core/ rules and errors, never services/ or api/
    - All filesystem failures mapped to StorageError or per-item ingestion errors

Design Decisions:
    - Module-level singletons initialized by the FastAPI lifespan, exposed through
      get_* dependencies so tests can swap them
"""
