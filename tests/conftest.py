import os

import pytest

# Keep tests independent of a developer's .env
os.environ["GRAPH_BACKEND"] = "memory"

from issue_graph.memory_store import InMemoryGraphStore  # noqa: E402


@pytest.fixture
def store():
    return InMemoryGraphStore()
