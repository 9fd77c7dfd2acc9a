"""Custom SQLAlchemy types for cross-database compatibility"""
from datetime import datetime, timezone
from sqlalchemy import TypeDecorator, String, JSON
import uuid


def generate_uuid():
    """Generate a UUID string"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_timestamp(value: datetime) -> float:
    """POSIX timestamp for a stored datetime (naive values are UTC)"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


class GUID(TypeDecorator):
    """Platform-independent GUID type that stores UUIDs as VARCHAR(36)"""
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return str(value)
        return value


class StringList(TypeDecorator):
    """List of strings stored as a JSON array"""
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [str(item) for item in value]

    def process_result_value(self, value, dialect):
        return list(value or [])


class DocumentList(TypeDecorator):
    """List of JSON objects (timeline events, quotes, sources)"""
    impl = JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return []
        return [dict(item) for item in value]

    def process_result_value(self, value, dialect):
        return list(value or [])


def enum_values(enum_cls):
    """Store enum values (not member names) in SQLEnum columns"""
    return [member.value for member in enum_cls]
