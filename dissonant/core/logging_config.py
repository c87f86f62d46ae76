"""Structured JSON logging configuration."""

import contextlib
import contextvars
import logging
import uuid
from collections.abc import Iterator

from pythonjsonlogger.json import JsonFormatter

# One id per webhook request, scheduled run or document event.
invocation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "invocation_id", default=""
)


class InvocationIdFilter(logging.Filter):
    """Inject invocation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.invocation_id = invocation_id_var.get("")  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False) -> None:
    """Configure root logger with JSON formatter and invocation-id filter."""
    handler = logging.StreamHandler()
    formatter = JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(invocation_id)s",
        rename_fields={"asctime": "timestamp", "levelname": "level"},
    )
    handler.setFormatter(formatter)
    handler.addFilter(InvocationIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    # google-cloud and urllib3 are chatty at INFO
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def generate_invocation_id() -> str:
    """Generate a new invocation ID."""
    return uuid.uuid4().hex[:16]


@contextlib.contextmanager
def bind_invocation(invocation_id: str | None = None) -> Iterator[str]:
    """Bind an invocation id for the duration of a task or script run."""
    token = invocation_id_var.set(invocation_id or generate_invocation_id())
    try:
        yield invocation_id_var.get()
    finally:
        invocation_id_var.reset(token)
