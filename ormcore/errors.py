"""Error types raised by the ORM core."""

from __future__ import annotations

from collections.abc import Iterable, Iterator


class OrmError(Exception):
    """Base class for all ORM errors."""

    default_message = "orm error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class RecordNotFoundError(OrmError):
    """Raised when a query for a single record finds nothing."""

    default_message = "record not found"


class InvalidSQLError(OrmError):
    """Raised when a query is built from invalid SQL."""

    default_message = "invalid SQL"


class InvalidTransactionError(OrmError):
    """Raised on commit or rollback without a valid transaction."""

    default_message = "no valid transaction"


class CantStartTransactionError(OrmError):
    """Raised when a transaction cannot be started."""

    default_message = "can't start transaction"


class UnaddressableError(OrmError):
    """Raised when a value cannot be written to."""

    default_message = "using unaddressable value"


class Errors(OrmError):
    """An ordered collection of errors that is itself an error."""

    def __init__(self, errors: Iterable[BaseException] = ()) -> None:
        self._errors: tuple[BaseException, ...] = tuple(errors)
        super().__init__("; ".join(str(e) for e in self._errors))

    def add(self, *args: BaseException | None) -> "Errors":
        """Return a new collection with the given errors appended.

        ``None`` values are skipped, nested collections are flattened and an
        error already present (by identity) is not added twice.
        """
        collected = list(self._errors)
        self._extend(collected, args)
        return Errors(collected)

    @classmethod
    def _extend(cls, collected: list[BaseException], new_errors: Iterable[BaseException | None]) -> None:
        for err in new_errors:
            if err is None:
                continue
            if isinstance(err, Errors):
                cls._extend(collected, err.get_errors())
            elif not any(err is existing for existing in collected):
                collected.append(err)

    def get_errors(self) -> list[BaseException]:
        """Return the contained errors as a list."""
        return list(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __str__(self) -> str:
        return "; ".join(str(e) for e in self._errors)


def is_record_not_found_error(err: BaseException | None) -> bool:
    """Tell whether ``err`` is, or contains, a record-not-found error."""
    if isinstance(err, Errors):
        if any(isinstance(e, RecordNotFoundError) for e in err):
            return True
    return isinstance(err, RecordNotFoundError)