"""Cache invalidation on ledger and adjustment writes.

Any insert, update or delete made through the ORM on one of the six record
sets bumps the cache generation.
"""
from __future__ import annotations

import logging

from sqlalchemy import event

from app.core.cache import StatementCache
from app.models.ledger_models import ADJUSTMENT_MODELS, LEDGER_MODELS

logger = logging.getLogger(__name__)

WRITE_EVENTS = ("after_insert", "after_update", "after_delete")


def register_invalidation_listeners(cache: StatementCache) -> list:
    """Attach mapper listeners; returns the handlers so tests can detach them."""

    def _on_write(mapper, connection, target) -> None:  # noqa: ARG001
        cache.invalidate()

    registered = []
    for model in (*LEDGER_MODELS, *ADJUSTMENT_MODELS):
        for name in WRITE_EVENTS:
            event.listen(model, name, _on_write)
            registered.append((model, name, _on_write))
    logger.info("Statement cache invalidation listeners registered models=%d", len(registered) // len(WRITE_EVENTS))
    return registered


def remove_invalidation_listeners(registered: list) -> None:
    for model, name, handler in registered:
        if event.contains(model, name, handler):
            event.remove(model, name, handler)
