import numpy as np
import pytest

from Tournament import EconomySession, make_rng


@pytest.fixture
def rng() -> np.random.Generator:
    """Deterministic generator for primitive-level tests."""
    return make_rng(7)


@pytest.fixture
def session() -> EconomySession:
    """Fresh default session: 256 competitors at 100 chips."""
    return EconomySession(seed=1234)


@pytest.fixture
def played_session(session) -> EconomySession:
    """Session that has completed 3x Cup -> Regionals -> Worlds."""
    session.run_cups_phase()
    session.run_regional()
    session.run_worlds()
    return session
