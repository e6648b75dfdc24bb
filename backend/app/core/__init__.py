"""Core Layer — domain rules with no IO, no async, no storage access.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Functions take plain data in and return plain data out; clocks and random
      tokens are the only non-deterministic inputs

Design Decisions:
    - Functional core separated from imperative shell: the record store and image
      ingestor call into core, never the reverse
"""
