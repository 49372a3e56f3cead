import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure() -> None:
    """Ensure the repository root is on sys.path so tests can import `hearth`.

    The modules live flat at the root and are not necessarily installed in the
    active environment.
    """

    project_root = Path(__file__).resolve().parents[1]
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


@pytest.fixture
def rng():
    """A seeded generator so every test sees the same fire."""
    return np.random.default_rng(1234)
