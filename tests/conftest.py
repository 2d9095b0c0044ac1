"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that
`import chat_runtime` and `import tests.utils` work consistently.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from chat_runtime.sessions import ChatSessionStore  # noqa: E402
from chat_runtime.storage.index_lock import LocalIndexLock  # noqa: E402
from tests.utils import InMemoryRedis  # noqa: E402


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def store(fake_redis: InMemoryRedis) -> ChatSessionStore:
    return ChatSessionStore(fake_redis, index_lock=LocalIndexLock())
