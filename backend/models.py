from sqlalchemy import Column, Integer, DateTime, Text
import datetime

from backend.db import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class QueryHistory(Base):
    __tablename__ = "query_history"

    id = Column(Integer, primary_key=True, index=True)
    graphql_schema = Column("schema", Text, nullable=False)
    user_story = Column(Text, nullable=False)
    generated_query = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
