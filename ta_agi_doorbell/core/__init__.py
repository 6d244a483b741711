"""Core Layer — pure domain logic, no I/O, no logging.

Invariants:
    - No module in core/ imports from services/, api/, or infrastructure/
    - Functions are deterministic given their inputs (nonce creation takes clock and randomness as parameters)
"""
