"""Common route dependencies."""
from functools import lru_cache
from typing import Annotated, Optional, TypeAlias

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.cache import StatementCache
from app.core.config import settings
from app.db.session import get_db
from app.services.statements import StatementReportingService

DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


@lru_cache
def get_statement_cache() -> Optional[StatementCache]:
    """Process-wide statement cache, or None when caching is disabled."""
    if not settings.STATEMENT_CACHE_ENABLED:
        return None
    return StatementCache(ttl=settings.STATEMENT_CACHE_TTL)


def get_reporting_service(
    db: DbDep,
    cache: Annotated[Optional[StatementCache], Depends(get_statement_cache)],
) -> StatementReportingService:
    return StatementReportingService(db, cache=cache)


ReportingServiceDep: TypeAlias = Annotated[StatementReportingService, Depends(get_reporting_service)]
