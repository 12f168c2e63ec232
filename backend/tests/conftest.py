import pathlib
import sys
from collections.abc import Iterator
from datetime import date
from typing import Any

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session  # noqa: E402

from app.config import AppSettings  # noqa: E402
from app.db.init import init_database  # noqa: E402
from app.db.session import create_engine_from_settings, create_session_factory  # noqa: E402
from app.models import LedgerTransaction  # noqa: E402
from fifo_ledger.models import OwnerKind, TransactionType  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "db: test touches the SQLite test database")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(database_url="sqlite://", base_currency="EUR", telemetry_enabled=False)


@pytest.fixture
def session(settings: AppSettings) -> Iterator[Session]:
    """A session bound to a fresh in-memory database."""

    engine = create_engine_from_settings(settings)
    init_database(engine)
    factory = create_session_factory(engine)
    db = factory()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


@pytest.fixture
def add_transaction(session: Session):
    """Insert a ``ledger_transaction`` row; portfolio 1 and security 1 by default."""

    def _add(id: int, type: str, day: date, **fields: Any) -> LedgerTransaction:
        fields.setdefault("owner_kind", OwnerKind.PORTFOLIO)
        fields.setdefault("owner_id", 1)
        if fields["owner_kind"] == OwnerKind.PORTFOLIO:
            fields.setdefault("security_id", 1)
        row = LedgerTransaction(id=id, type=TransactionType(type), date=day, **fields)
        session.add(row)
        session.flush()
        return row

    return _add
