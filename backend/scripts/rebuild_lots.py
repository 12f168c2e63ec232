"""Rebuild FIFO lots for one security or for the whole database."""

from __future__ import annotations

import argparse
import logging
import sys

from app.config import get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.init import init_database
from app.db.session import create_engine_from_settings, create_session_factory, session_scope
from app.services.rebuild import rebuild_all_securities, rebuild_security

logger = logging.getLogger(__name__)


def _run(security_id: int | None, strict: bool, database_url: str | None) -> int:
    settings = get_settings(database_url=database_url) if database_url else get_settings()
    setup_logging(settings.log_level)
    logger.info("Settings: %s", settings.dict_for_logging())

    engine = create_engine_from_settings(settings)
    setup_telemetry(settings, engine)
    init_database(engine)
    factory = create_session_factory(engine)

    with session_scope(factory) as session:
        if security_id is not None:
            computation = rebuild_security(session, security_id, strict=strict)
            print(
                f"Rebuilt security {security_id}: {len(computation.lots)} lots, "
                f"{len(computation.consumptions)} consumptions, {len(computation.warnings)} warnings"
            )
            return 0
        summary = rebuild_all_securities(session, strict=strict)
    print(f"Rebuilt {len(summary.rebuilt)} securities, {len(summary.failed)} failed")
    for failed_id, reason in summary.failed.items():
        print(f"  security {failed_id}: {reason}")
    return 0 if summary.ok else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Rebuild FIFO lots from the transaction ledger")
    parser.add_argument("--security-id", type=int, default=None, help="Only rebuild this security")
    parser.add_argument("--strict", action="store_true", help="Fail on oversells and unresolved transfers")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()
    sys.exit(_run(args.security_id, args.strict or get_settings().fifo_strict_mode, args.database_url))


if __name__ == "__main__":
    main()
