"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input)
    - Domain enums from core/ used for category-like fields

Design Decisions:
    - Separate from the store: schemas are API contracts, records are open mappings
"""
