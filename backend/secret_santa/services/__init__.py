"""Services Layer - draw creation, match generation, and account provisioning.

Invariants:
    - Services depend on StoragePort / IdentityPort only, never on concrete adapters
    - Provisioning failures are logged and reported, never raised to API callers
"""
