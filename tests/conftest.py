"""Shared fixtures. Nothing here touches the network."""

from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def fake_llm():
    """Object with the ModelClient.call_llm signature."""
    llm = MagicMock()
    llm.call_llm = AsyncMock(return_value="{}")
    return llm
