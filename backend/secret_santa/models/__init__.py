"""ORM Models - SQLAlchemy declarative models for draws, participants, and matches.

Invariants:
    - All models inherit from Base (db/base.py)
    - Draw is the aggregate root; participants and matches are scoped by draw_id

Design Decisions:
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from secret_santa.models.draw import Draw  # noqa: F401
from secret_santa.models.participant import Participant  # noqa: F401
from secret_santa.models.match import Match  # noqa: F401
