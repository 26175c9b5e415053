from __future__ import annotations

from typing import Iterator

import pytest

from chat_relay.config import get_settings


@pytest.fixture(autouse=True)
def reset_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
