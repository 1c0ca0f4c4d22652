"""Core Layer - pure domain logic, no IO, no framework imports.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - The matching engine is pure; randomness is injected

Design Decisions:
    - Functional core separated from imperative shell: orchestrators in
      services/ await the ports and call into core between awaits
"""
