"""Full FIFO rebuilds driven from the database."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from opentelemetry import trace
from sqlalchemy.orm import Session

from app.config import get_settings
from app.services.feed import list_security_ids, load_cross_entry_resolver, load_security_transactions
from app.services.lot_store import LotStore, SqlLotStore
from fifo_ledger.cross_entry import CrossEntryResolver
from fifo_ledger.errors import IntegrityIssue
from fifo_ledger.fifo import LotComputation, compute_lots

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class RebuildSummary:
    """Outcome of a batch rebuild; partial success is normal."""

    rebuilt: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)
    warnings: list[IntegrityIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _strict(strict: bool | None) -> bool:
    return get_settings().fifo_strict_mode if strict is None else strict


def rebuild_security(
    session: Session,
    security_id: int,
    *,
    strict: bool | None = None,
    store: LotStore | None = None,
    resolver: CrossEntryResolver | None = None,
) -> LotComputation:
    """Recompute and persist every lot of ``security_id``.

    Database errors propagate; data-quality problems only degrade the result
    unless strict mode is on.
    """

    with tracer.start_as_current_span("fifo.rebuild_security") as span:
        span.set_attribute("fifo.security_id", security_id)
        transactions = load_security_transactions(session, security_id)
        resolver = resolver or load_cross_entry_resolver(session)
        computation = compute_lots(transactions, resolver, strict=_strict(strict))
        (store or SqlLotStore(session)).replace_security(security_id, computation)
        span.set_attribute("fifo.lot_count", len(computation.lots))
        span.set_attribute("fifo.warning_count", len(computation.warnings))
        logger.info(
            "Rebuilt FIFO lots for security %s: %d transactions, %d lots, %d consumptions",
            security_id,
            len(transactions),
            len(computation.lots),
            len(computation.consumptions),
        )
        return computation


def rebuild_all_securities(
    session: Session,
    *,
    strict: bool | None = None,
    store: LotStore | None = None,
) -> RebuildSummary:
    """Rebuild each security in turn; one failure does not stop the batch."""

    summary = RebuildSummary()
    resolver = load_cross_entry_resolver(session)
    with tracer.start_as_current_span("fifo.rebuild_all_securities") as span:
        for security_id in list_security_ids(session):
            try:
                computation = rebuild_security(
                    session, security_id, strict=strict, store=store, resolver=resolver
                )
            except Exception as exc:  # noqa: BLE001 - isolate per-security failures
                session.rollback()
                logger.exception("Failed to build FIFO lots for security %s", security_id)
                summary.failed[security_id] = str(exc)
                continue
            summary.rebuilt.append(security_id)
            summary.warnings.extend(computation.warnings)
        span.set_attribute("fifo.rebuilt", len(summary.rebuilt))
        span.set_attribute("fifo.failed", len(summary.failed))
    logger.info(
        "FIFO rebuild finished: %d rebuilt, %d failed", len(summary.rebuilt), len(summary.failed)
    )
    return summary


__all__ = ["RebuildSummary", "rebuild_security", "rebuild_all_securities"]
