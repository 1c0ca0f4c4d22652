"""Service test fixtures - in-memory ports wired into real orchestrators.

Invariants:
    - Every test gets fresh InMemoryStorage / FakeIdentity instances
    - Orchestrators get a seeded random.Random, so match orders are reproducible
"""

import random

import pytest

from secret_santa.core.domain_types import NewParticipant
from secret_santa.services.account_provisioner import AccountProvisioner
from secret_santa.services.draw_orchestrator import DrawOrchestrator
from secret_santa.services.match_orchestrator import MatchOrchestrator

from tests.services.fake_ports import FakeIdentity, InMemoryStorage


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def identity():
    return FakeIdentity()


@pytest.fixture
def provisioner(identity):
    return AccountProvisioner(identity)


@pytest.fixture
def draw_orchestrator(storage, provisioner):
    return DrawOrchestrator(storage, provisioner)


@pytest.fixture
def match_orchestrator(storage, provisioner):
    return MatchOrchestrator(storage, provisioner, rng=random.Random(42))


@pytest.fixture
def three_participants():
    return [
        NewParticipant("Alice", "Anders", "alice@example.com", "Books"),
        NewParticipant("Bob", "Brown", "bob@example.com", "Board games"),
        NewParticipant("Carol", "Clark", "carol@example.com", ""),
    ]
