import pytest

from oracles.pool import OracleIdentity, OraclePool
from tests.fakes import FakeGateway


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def scenario_pool():
    """Four oracles with the index sets used throughout the dispatcher tests."""
    pool = OraclePool()
    for account, indexes in [
        ("0xoracleA", {1, 2, 3}),
        ("0xoracleB", {2, 3, 4}),
        ("0xoracleC", {0, 1, 2}),
        ("0xoracleD", {3, 4, 0}),
    ]:
        pool.add(OracleIdentity(account=account, indexes=frozenset(indexes)))
    return pool
