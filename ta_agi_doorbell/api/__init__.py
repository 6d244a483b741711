"""API Layer — AGI route table and the error boundary.

Invariants:
    - Routes are a static table; every template maps to a RequestOperation
    - Every per-request error is converted to a caller-visible message here
"""
