"""Infrastructure Layer - database, identity provider client, and logging setup.

Invariants:
    - Adapters implement the protocols in core/repository_protocols.py
    - All external calls wrapped with retry/timeout/error mapping
"""
