import sys
import random
from pathlib import Path

import pytest

# Make the root modules (config, core, parser_factory, ...) importable
ROOT_DIR = Path(__file__).parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from core import SchemaStore  # noqa: E402
from Schema.adapters import SQLAdapter  # noqa: E402


@pytest.fixture
def store():
    """Empty store with a seeded placement generator."""
    return SchemaStore(parser=SQLAdapter(rng=random.Random(7)))


@pytest.fixture
def shop(store):
    """users(id PK, email UNIQUE) and orders(id PK, user_id) without relationships."""
    users = store.add_table("users", [
        {"name": "id", "type": "INT", "nullable": False, "is_primary_key": True},
        {"name": "email", "type": "VARCHAR(255)", "nullable": False, "is_unique": True},
    ], position={"x": 10, "y": 20})
    orders = store.add_table("orders", [
        {"name": "id", "type": "INT", "nullable": False, "is_primary_key": True},
        {"name": "user_id", "type": "INT"},
    ], position={"x": 300, "y": 20})
    return store, users, orders


@pytest.fixture
def linked_shop(shop):
    """The shop fixture with orders.user_id -> users.id."""
    store, users, orders = shop
    rel = store.add_relationship(
        orders.id, orders.get_column_by_name("user_id").id,
        users.id, users.get_column_by_name("id").id
    )
    return store, users, orders, rel
