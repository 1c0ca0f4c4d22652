"""Secret Santa Application Package - gift-exchange draws, matching, and invitations.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""
