"""Functional core — pure rules, domain types, errors and boundary protocols.

Invariants:
    - Nothing in core/ performs IO
    - Core never imports from services/, infrastructure/ or api/
"""
