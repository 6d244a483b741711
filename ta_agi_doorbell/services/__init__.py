"""Services Layer — pipeline stages that orchestrate core logic around IO.

Invariants:
    - Stages applied in a fixed order by request_pipeline (no dynamic registration)
    - IO reached only through the protocols in core/boundary_protocols.py
"""
