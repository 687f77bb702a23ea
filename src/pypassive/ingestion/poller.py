"""Incremental polling of append-only record sources.

:func:`poll_new` is the resumable "read everything newer than the
watermark" loop every log-based collector uses. Rows are requested in
ascending order of a single monotonic field, ``page_limit`` at a time,
and the watermark only ever moves to the last row the handler finished.
Re-running with the returned watermark therefore never repeats a row.

:func:`scan_keys` is the within-cycle variant used for full enumerations
(contacts): it pages on the last value of a sort key instead of a row
offset, which stays correct when rows are inserted or removed while the
scan is running. Its cursor is not persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pypassive.exceptions import SourceQueryError
from pypassive.ingestion.sources import RecordSource, Row

_logger = logging.getLogger(__name__)


def _never_cancelled() -> bool:
    return False


@dataclass(frozen=True)
class PollResult:
    """Outcome of one :func:`poll_new` cycle.

    ``watermark`` is the ordering value of the last handled row, or the
    input watermark when nothing was handled. ``aborted`` is set when a
    source query failed; ``cancelled`` when the cycle stopped early on
    request.
    """

    watermark: Any
    handled: int
    pages: int
    aborted: bool = False
    cancelled: bool = False


def poll_new(
    source: RecordSource,
    ordering_field: str,
    watermark: Any,
    page_limit: int,
    handler: Callable[[Row], None],
    *,
    is_cancelled: Callable[[], bool] = _never_cancelled,
    commit: Callable[[Any], None] | None = None,
) -> PollResult:
    """Hand every row newer than *watermark* to *handler*, in order.

    Parameters
    ----------
    source : RecordSource
        Source to query.
    ordering_field : str
        Strictly increasing field rows are ordered and filtered on.
    watermark
        Exclusive lower bound; rows with ``ordering_field <= watermark``
        are never requested.
    page_limit : int
        Maximum rows per query. A full page triggers another query.
    handler : callable
        Called once per row. An exception from the handler ends the
        cycle and propagates after the progress so far is committed.
    is_cancelled : callable
        Cooperative cancellation flag, checked before every row.
    commit : callable or None
        Receives the new watermark after every page that handled at
        least one row (and before a handler exception propagates).

    Returns
    -------
    PollResult
        Final watermark and counters.
    """
    if page_limit <= 0:
        raise ValueError("page_limit must be positive")

    last = watermark
    handled = 0
    pages = 0

    while True:
        try:
            rows = source.query(ordering_field, last, page_limit)
        except Exception:
            _logger.error(
                "Error in processing %s after %s; retrying next cycle",
                source.name,
                last,
                exc_info=True,
            )
            return PollResult(watermark=last, handled=handled, pages=pages, aborted=True)
        pages += 1

        in_page = 0
        stopped = False
        try:
            for row in rows:
                if is_cancelled():
                    stopped = True
                    break
                handler(row)
                last = row[ordering_field]
                in_page += 1
                handled += 1
        finally:
            if commit is not None and in_page:
                commit(last)

        _logger.debug("%s page %d: %d rows, watermark %s", source.name, pages, in_page, last)

        if stopped or (in_page == page_limit and is_cancelled()):
            return PollResult(watermark=last, handled=handled, pages=pages, cancelled=True)
        if in_page != page_limit:
            return PollResult(watermark=last, handled=handled, pages=pages)


def scan_keys(
    source: RecordSource,
    sort_field: str,
    page_limit: int,
    *,
    is_cancelled: Callable[[], bool] = _never_cancelled,
) -> frozenset[str] | None:
    """Collect every value of *sort_field*, paging on the last value seen.

    Returns ``None`` when cancelled before the enumeration finished, so a
    partial snapshot is never mistaken for a complete one.

    Raises
    ------
    SourceQueryError
        If any page fails, or a full page holds no key past the current
        offset; a partial enumeration is discarded.
    """
    if page_limit <= 0:
        raise ValueError("page_limit must be positive")

    keys: set[str] = set()
    offset: Any = None

    while True:
        try:
            rows = source.query(sort_field, offset, page_limit)
        except SourceQueryError:
            raise
        except Exception as exc:
            raise SourceQueryError(f"Scan of {source.name} failed: {exc}", source=source.name) from exc

        previous = offset
        for row in rows:
            value = row[sort_field]
            if value is None:
                continue
            offset = value
            keys.add(str(value))

        if len(rows) != page_limit:
            return frozenset(keys)
        if offset is None or offset == previous:
            raise SourceQueryError(f"Scan of {source.name} made no progress past {offset!r}", source=source.name)
        if is_cancelled():
            _logger.debug("Scan of %s cancelled after %d keys", source.name, len(keys))
            return None
