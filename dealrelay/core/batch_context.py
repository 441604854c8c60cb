from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

NO_BATCH = "-"

_current_batch: ContextVar[str] = ContextVar("dealrelay_batch_id", default=NO_BATCH)


def get_batch_id() -> str:
    return _current_batch.get()


@contextmanager
def batch_scope(batch_id: str | None = None) -> Iterator[str]:
    """Tag everything logged or reported inside the block with one batch id."""
    token = _current_batch.set(batch_id or uuid.uuid4().hex[:12])
    try:
        yield _current_batch.get()
    finally:
        _current_batch.reset(token)
