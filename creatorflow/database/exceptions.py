"""Exceptions raised by the persistence and sync layers."""


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """The hosted database could not be reached or is not configured."""
    pass


class DatabaseConstraintError(DatabaseError):
    """Constraint violation on write (duplicate id, not-null column...)."""
    pass


class DatabaseOperationError(DatabaseError):
    """A read or write against the store failed."""
    pass


class EntityNotFoundError(DatabaseError):
    """No row (or local record) with that id belongs to the current owner."""
    pass


class ValidationError(DatabaseError):
    """Row or patch data was rejected before reaching the database."""
    pass
