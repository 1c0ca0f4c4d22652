"""Dependency Wiring - builds orchestrators from the process-wide adapters.

Invariants:
    - Orchestrators receive their collaborators explicitly; none reaches for a
      global client itself
    - Caller identity comes from the X-User-Id header, else settings.dev_user_id

Design Decisions:
    - One Depends() chain per request: tests override get_storage /
      get_identity_client with fakes and the rest of the chain stays real
    - Header-based caller id: authentication itself is an upstream concern
"""

from uuid import UUID

from fastapi import Depends, Header

from secret_santa.config import get_settings
from secret_santa.core.domain_types import UserId
from secret_santa.core.errors import ValidationError
from secret_santa.core.repository_protocols import IdentityPort, StoragePort
from secret_santa.infrastructure.database import (
    DatabaseSessionManager, get_db_manager,
)
from secret_santa.infrastructure.identity_client import get_identity_client
from secret_santa.infrastructure.sql_storage import SqlAlchemyStorage
from secret_santa.services.account_provisioner import AccountProvisioner
from secret_santa.services.draw_orchestrator import DrawOrchestrator
from secret_santa.services.match_orchestrator import MatchOrchestrator


def get_storage(
    db: DatabaseSessionManager = Depends(get_db_manager),
) -> StoragePort:
    return SqlAlchemyStorage(db)


def get_provisioner(
    identity: IdentityPort = Depends(get_identity_client),
) -> AccountProvisioner:
    return AccountProvisioner(identity)


def get_draw_orchestrator(
    storage: StoragePort = Depends(get_storage),
    provisioner: AccountProvisioner = Depends(get_provisioner),
) -> DrawOrchestrator:
    return DrawOrchestrator(storage, provisioner)


def get_match_orchestrator(
    storage: StoragePort = Depends(get_storage),
    provisioner: AccountProvisioner = Depends(get_provisioner),
) -> MatchOrchestrator:
    return MatchOrchestrator(storage, provisioner)


def get_current_user_id(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
) -> UserId:
    if not x_user_id:
        return UserId(get_settings().dev_user_id)
    try:
        return UserId(UUID(x_user_id))
    except ValueError:
        raise ValidationError("X-User-Id must be a UUID", "X-User-Id")
