# tests/conftest.py
"""
Global test bootstrap
- AnyIO on asyncio for every `@pytest.mark.anyio` test
- Pulls in the PostgreSQL, clock and app fixtures
"""

from __future__ import annotations

import os

import pytest

# Quiet, plain logs under pytest (set before filmapi.core.logger is imported)
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_TO_FILE", "0")


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


from tests.fixtures.clock import *  # noqa: F401,F403,E402
from tests.fixtures.db import *     # noqa: F401,F403,E402
from tests.fixtures.app import *    # noqa: F401,F403,E402
