from typing import Type, TypeVar

E = TypeVar("E", bound="DatabaseInitError")


class DatabaseInitError(Exception):
    """Base class for failures while bringing the database up."""

    def __init__(self, message: str, orig: BaseException | None = None) -> None:
        super().__init__(message)
        self.orig = orig

    @classmethod
    def from_driver(cls: Type[E], exc: BaseException) -> E:
        return cls(str(exc), orig=exc)


class DatabaseConnectionError(DatabaseInitError):
    """The initial connection could not be opened."""


class SchemaReconciliationError(DatabaseInitError):
    """Creating or altering the schema failed, or the live schema conflicts with the models."""
