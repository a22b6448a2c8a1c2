"""
Custom SQLAlchemy types shared by the Postgres and SQLite backends.
"""
import json
import uuid

from sqlalchemy import TypeDecorator, CHAR, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB


class GUID(TypeDecorator):
    """
    UUID primary/foreign keys.
    
    Native UUID on PostgreSQL, CHAR(36) strings elsewhere. Always returns
    uuid.UUID instances to Python.
    """
    impl = CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(CHAR(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        if dialect.name == 'postgresql':
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


class KeywordList(TypeDecorator):
    """
    Ordered list of keyword strings (department keyword tables).
    
    JSONB on PostgreSQL, JSON text elsewhere. Blank entries are dropped and
    surrounding whitespace trimmed on the way in; order is preserved.
    """
    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        keywords = [str(k).strip() for k in value if k is not None and str(k).strip()]
        if dialect.name == 'postgresql':
            return keywords
        return json.dumps(keywords)

    def process_result_value(self, value, dialect):
        if value is None:
            return []
        if isinstance(value, str):
            value = json.loads(value)
        return list(value)
