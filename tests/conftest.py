"""Pytest configuration and fixtures."""

import itertools
from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from slabstock.core.entities import Batch, Lead, Reservation, ReservationStatus
from slabstock.core.entities.time import utc_now

_codes = itertools.count(1)


def make_batch(**overrides) -> Batch:
    """Build a valid AVAILABLE batch with a unique code."""
    data = {
        "industry_id": "industry-1",
        "batch_code": f"GRN-{next(_codes):06d}",
        "height": 300.0,
        "width": 200.0,
        "thickness": 2.0,
        "quantity_slabs": 10,
        "industry_price_cents": 40000,
    }
    data.update(overrides)
    return Batch(**data)


def make_reservation(batch_id: str, **overrides) -> Reservation:
    """Build an ACTIVE reservation expiring in one day."""
    data = {
        "batch_id": batch_id,
        "reserved_by_user_id": "actor-1",
        "customer_name": "Maria Souza",
        "customer_contact": "maria@example.com",
        "status": ReservationStatus.ACTIVE,
        "reserved_price_cents": 40000,
        "expires_at": utc_now() + timedelta(days=1),
    }
    data.update(overrides)
    return Reservation(**data)


def make_lead(**overrides) -> Lead:
    data = {"name": "Joao Lima", "email": "joao@example.com", "phone": "+55 11 99999-0000"}
    data.update(overrides)
    return Lead(**data)


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 4
    mock.storage.busy_timeout = 10000
    return mock


@pytest.fixture
async def migrated_db(temp_db_path: Path) -> Path:
    """Temporary database with every migration applied."""
    from slabstock.infrastructure.storage.sqlite.migrations import initialize_database

    results = await initialize_database(temp_db_path, create_backup_before=False)
    assert all(r.success for r in results)
    return temp_db_path


@pytest.fixture
async def sqlite_pool(migrated_db: Path, mock_settings) -> AsyncGenerator:
    """Global connection pool pointed at the migrated temp database."""
    import slabstock.infrastructure.storage.sqlite.connection as conn_module

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        pool = await conn_module.get_pool()
        try:
            yield pool
        finally:
            await conn_module.close_pool()


@pytest.fixture
def batch_factory():
    return make_batch


@pytest.fixture
def reservation_factory():
    return make_reservation


@pytest.fixture
def lead_factory():
    return make_lead
