"""Shared fixtures for the telos idea matrix tests."""

import pytest

from telos_matrix.schema import Goal, Telos
from telos_matrix.telos_parser import load_telos

from helpers import TELOS_PATH


@pytest.fixture(scope="session")
def telos() -> Telos:
    """The fixture goals document, parsed."""
    return load_telos(TELOS_PATH)


@pytest.fixture
def bare_telos() -> Telos:
    """A telos with one goal and no stack."""
    return Telos(goals=[Goal(id="G1", description="Ship something")])
