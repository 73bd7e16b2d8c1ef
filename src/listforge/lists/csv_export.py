"""CSV export for lists, with cooperative cancellation."""

from __future__ import annotations

import asyncio
import csv
import io
import logging
from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, TypeVar

from listforge.errors import Cancelled

if TYPE_CHECKING:
    from listforge.lists.list import List

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_cancellable(awaitable: Awaitable[T], cancel: asyncio.Event | None) -> T:
    """Await ``awaitable`` unless ``cancel`` is set first.

    When the event fires before the awaitable finishes, the in-flight task
    is cancelled and ``Cancelled`` is raised.
    """
    if cancel is None:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    if cancel.is_set():
        task.cancel()
        raise Cancelled("Operation cancelled before it started")
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
    if task in done:
        return task.result()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    raise Cancelled("Operation cancelled")


async def get_csv_data(
    list: "List",
    filters: Any = None,
    columns: str | None = None,
    search: str | None = None,
    cancel: asyncio.Event | None = None,
    batch_size: int = 100,
) -> str:
    """Render matching items as CSV text.

    The first column is ``id``; the rest come from ``columns`` (or the
    list's default columns) rendered with each field's ``format``. Items are
    fetched in batches so a ``cancel`` event can stop the export between and
    during backend calls.
    """
    cols = [c for c in list.expand_columns(columns) if c.field is None or c.field.include_in_data]
    query = list.query(filters=filters, search=search).sort_by(None)
    query.select([p for c in cols if c.field is not None for p in c.field.paths])

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["id"] + [c.label for c in cols if c.path != "id"])

    skip = 0
    while True:
        query.page(skip, batch_size)
        batch = await run_cancellable(query.exec(), cancel)
        for item in batch:
            row = [item.id]
            for col in cols:
                if col.path == "id":
                    continue
                row.append(col.field.format(item) if col.field is not None else item.get(col.path))
            writer.writerow(row)
        if len(batch) < batch_size:
            break
        skip += batch_size

    logger.debug("Exported %d rows from %s", skip + len(batch), list.key)
    return buffer.getvalue()
