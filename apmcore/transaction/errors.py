"""
Transaction Error Records

Converts raw failures into structured error records and stores them in a
bounded per-transaction collection.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus

# Replaces stored error messages when high security mode is on.
HIGH_SECURITY_ERROR_MSG = "message removed by high security setting"

PANIC_ERROR_KLASS = "panic"

MAX_TXN_ERRORS = 5


@dataclass
class ErrorRecord:
    """A single captured error."""

    klass: str
    msg: str
    when: datetime | None = None
    stack: str = ""

    def to_dict(self) -> dict[str, str | None]:
        return {
            "error.class": self.klass,
            "error.message": self.msg,
            "timestamp": self.when.isoformat() if self.when else None,
            "stack_trace": self.stack,
        }


def get_stack_trace(skip: int = 0) -> str:
    """Capture the caller's stack as text, dropping `skip` innermost frames."""
    frames = traceback.format_stack()
    # Drop this function's own frame as well
    end = len(frames) - 1 - skip
    return "".join(frames[: max(end, 0)])


def exception_class_name(exc: BaseException) -> str:
    """Qualified class name in `module:QualName` form."""
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}:{cls.__qualname__}"


def error_from_exception(exc: BaseException) -> ErrorRecord:
    """Build a record for an error the caller noticed explicitly."""
    if exc.__traceback__ is not None:
        stack = "".join(traceback.format_exception(exc))
    else:
        stack = get_stack_trace(skip=2)
    return ErrorRecord(klass=exception_class_name(exc), msg=str(exc), stack=stack)


def error_from_response_code(code: int) -> ErrorRecord:
    """Build a record for an error HTTP status."""
    try:
        msg = HTTPStatus(code).phrase
    except ValueError:
        msg = ""
    return ErrorRecord(klass=str(code), msg=msg, stack=get_stack_trace(skip=2))


def error_from_panic(exc: BaseException) -> ErrorRecord:
    """Build a record for a failure that unwound through the transaction."""
    return ErrorRecord(
        klass=PANIC_ERROR_KLASS,
        msg=f"{exception_class_name(exc)}: {exc}",
        stack="".join(traceback.format_exception(exc)),
    )


@dataclass
class ErrorCollection:
    """
    Fixed-capacity error store.

    Always present and empty until the first insert; records beyond capacity
    are silently dropped.
    """

    capacity: int = MAX_TXN_ERRORS
    records: list[ErrorRecord] = field(default_factory=list)

    def add(self, record: ErrorRecord) -> bool:
        if len(self.records) >= self.capacity:
            return False
        self.records.append(record)
        return True

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)
