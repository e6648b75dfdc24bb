"""Services Layer — orchestration between image ingestion and the record store.

Invariants:
    - Services own the all-or-nothing commit rule and the media retention policy

Design Decisions:
    - One service per resource; dependencies injected through FastAPI Depends
"""
