"""Infrastructure Layer — AGI wire protocol, CoE codec, UDP transport, logging setup.

Invariants:
    - All socket failures mapped to typed errors from core/errors.py
"""
