"""
History store: append-only `query_history` table behind SQLAlchemy.

The engine is built lazily on first use, so a missing or unreachable database
surfaces as StoreUnavailable when the store is touched, never at import time.
"""
from typing import Optional, List

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from backend import monitoring
from backend.errors import StoreUnavailable
from backend.schemas import HistoryRecord

Base = declarative_base()


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def _to_record(row) -> HistoryRecord:
    return HistoryRecord(
        id=row.id,
        schema=row.graphql_schema,
        userStory=row.user_story,
        generatedQuery=row.generated_query,
        createdAt=row.created_at,
    )


class HistoryStore:
    def __init__(self, database_url: str):
        self.database_url = database_url
        self._session_factory = None

    def _sessions(self):
        if not self.database_url:
            raise StoreUnavailable("History store is not configured (DATABASE_URL is empty)")
        if self._session_factory is None:
            # import models lazily so Base metadata has the table
            import backend.models  # noqa: F401
            try:
                engine = _make_engine(self.database_url)
                Base.metadata.create_all(bind=engine)
            except Exception as e:
                raise StoreUnavailable(f"History store unreachable: {type(e).__name__}") from e
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        return self._session_factory

    def init_schema(self) -> bool:
        """Create tables if possible. Failure is logged; the app still starts."""
        try:
            self._sessions()
            return True
        except StoreUnavailable as e:
            monitoring.logger.warning("History store init failed", extra={"reason": e.message})
            return False

    def append(self, schema: str, user_story: str, generated_query: str) -> HistoryRecord:
        """
        Insert one history row; the store assigns id and created_at.
        Raises StoreUnavailable on any persistence failure.
        """
        from backend.models import QueryHistory
        session_factory = self._sessions()
        try:
            with session_factory() as db:
                row = QueryHistory(
                    graphql_schema=schema,
                    user_story=user_story,
                    generated_query=generated_query,
                )
                db.add(row)
                db.commit()
                db.refresh(row)
                return _to_record(row)
        except Exception as e:
            raise StoreUnavailable(f"Failed to write history record: {type(e).__name__}") from e

    def list_recent(self, limit: int = 10) -> List[HistoryRecord]:
        """
        Up to `limit` records, newest first (ties: later insert first).
        Returns [] when the store is empty or unreachable.
        """
        if limit <= 0:
            return []
        from backend.models import QueryHistory
        try:
            session_factory = self._sessions()
            with session_factory() as db:
                rows = (
                    db.query(QueryHistory)
                    .order_by(QueryHistory.created_at.desc(), QueryHistory.id.desc())
                    .limit(limit)
                    .all()
                )
                records = [_to_record(r) for r in rows]
        except StoreUnavailable as e:
            monitoring.inc_history_failure("read")
            monitoring.logger.warning("History store unavailable, returning empty list",
                                      extra={"reason": e.message})
            return []
        except Exception as e:
            monitoring.inc_history_failure("read")
            monitoring.logger.warning("History read failed, returning empty list",
                                      extra={"reason": type(e).__name__})
            return []
        if not records:
            monitoring.logger.info("History store is empty")
        return records

    def get(self, record_id: int) -> Optional[HistoryRecord]:
        from backend.models import QueryHistory
        try:
            session_factory = self._sessions()
            with session_factory() as db:
                row = db.get(QueryHistory, record_id)
                return _to_record(row) if row is not None else None
        except Exception as e:
            monitoring.inc_history_failure("read")
            monitoring.logger.warning("History lookup failed",
                                      extra={"record_id": record_id, "reason": type(e).__name__})
            return None
