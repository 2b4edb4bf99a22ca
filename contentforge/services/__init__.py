"""Services Layer — project store, template catalog, quota ledger, audit log, export orchestrator.

Invariants:
    - Every public operation returns a Result; nothing raises across this boundary
    - Services own their commits; the export orchestrator opens its own units of work

Design Decisions:
    - One service per aggregate, wired explicitly by the HTTP shell (no registry)
"""
