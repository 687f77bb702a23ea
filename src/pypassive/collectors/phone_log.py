"""Call log, message log and unread-message collector."""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable, Sequence

from pypassive._constants import LAST_CALL_KEY, LAST_SMS_KEY, PAGE_LIMIT
from pypassive._crypto.hashing import IdentityHasher, numeric_phone_number
from pypassive._processor import Step
from pypassive._redact import redact_for_log
from pypassive.collectors._base import PeriodicCollector
from pypassive.exceptions import SourceQueryError
from pypassive.ingestion.normalize import epoch_seconds, safe_float, safe_int, safe_str
from pypassive.ingestion.poller import poll_new
from pypassive.ingestion.sources import CountingSource, RecordSource, Row
from pypassive.models.records import (
    MessageType,
    PhoneCall,
    PhoneSms,
    PhoneSmsUnread,
    call_type_from_code,
    message_type_from_code,
)
from pypassive.sinks import Sink
from pypassive.state.watermark import WatermarkStore

_logger = logging.getLogger(__name__)

#: Columns a call log source must provide.
CALL_COLUMNS = ("date", "cached_lookup_uri", "number", "duration", "type")
#: Columns a message log source must provide.
SMS_COLUMNS = ("date", "person", "address", "type", "body")
#: Ordering field of both logs, epoch milliseconds.
DATE_FIELD = "date"


class PhoneLogCollector(PeriodicCollector):
    """Harvests new calls and messages and counts unread messages.

    Each cycle runs three steps in order: call log, message log, unread
    count. The call and message steps resume from their persisted
    watermarks, so every row is published once.

    Parameters
    ----------
    calls : RecordSource
        Call log with :data:`CALL_COLUMNS`.
    messages : RecordSource
        Message log with :data:`SMS_COLUMNS`.
    unread : CountingSource
        Message store supporting ``count(read=0)``.
    hasher : IdentityHasher
        Anonymizes call targets and message addresses.
    sink : Sink
        Receives the records.
    watermarks : WatermarkStore
        Persisted per-log watermarks.
    interval : float
        Seconds between cycles.
    page_limit : int
        Rows per source query.
    clock : callable
        Wall clock in epoch seconds for ``received_time``.
    """

    name = "phone_log"

    def __init__(
        self,
        calls: RecordSource,
        messages: RecordSource,
        unread: CountingSource,
        hasher: IdentityHasher,
        sink: Sink,
        watermarks: WatermarkStore,
        *,
        interval: float,
        page_limit: int = PAGE_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._calls = calls
        self._messages = messages
        self._unread = unread
        self._hasher = hasher
        self._sink = sink
        self._watermarks = watermarks
        self._page_limit = page_limit
        self._clock = clock
        super().__init__(interval)

    def steps(self) -> Sequence[Step]:
        return [self.process_call_log, self.process_sms_log, self.process_unread_sms]

    def on_start(self) -> None:
        for key in (LAST_CALL_KEY, LAST_SMS_KEY):
            self._watermarks.load(key)

    def _is_cancelled(self) -> bool:
        return self.is_done

    def _poll(self, source: RecordSource, key: str, handler: Callable[[Row], None]) -> None:
        watermark = self._watermarks.load(key)
        result = poll_new(
            source,
            DATE_FIELD,
            watermark.last_seen_value,
            self._page_limit,
            handler,
            is_cancelled=self._is_cancelled,
            commit=functools.partial(self._watermarks.advance, key),
        )
        _logger.info(
            "%s: %d new rows in %d pages, watermark %s%s",
            source.name,
            result.handled,
            result.pages,
            result.watermark,
            " (cancelled)" if result.cancelled else " (aborted)" if result.aborted else "",
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def process_call_log(self) -> None:
        self._poll(self._calls, LAST_CALL_KEY, self.handle_call)

    def process_sms_log(self) -> None:
        self._poll(self._messages, LAST_SMS_KEY, self.handle_sms)

    def process_unread_sms(self) -> None:
        try:
            count = self._unread.count(read=0)
        except SourceQueryError:
            _logger.error("Error in counting unread messages of %s", self._unread.name, exc_info=True)
            return
        now = self._clock()
        self._sink.publish(PhoneSmsUnread.TOPIC, PhoneSmsUnread(event_time=now, received_time=now, count=count))
        _logger.info("SMS unread: %d", count)

    # ------------------------------------------------------------------
    # Row handlers
    # ------------------------------------------------------------------

    def handle_call(self, row: Row) -> None:
        target = safe_str(row.get("number")) or ""
        record = PhoneCall(
            event_time=epoch_seconds(row[DATE_FIELD]),
            received_time=self._clock(),
            duration_seconds=safe_float(row.get("duration")) or 0.0,
            anonymized_target_key=self._hasher.hash(target),
            call_type=call_type_from_code(safe_int(row.get("type"))),
            # A cached lookup URI is only present for saved contacts.
            target_is_known_contact=row.get("cached_lookup_uri") is not None,
            target_is_anonymous_non_numeric=numeric_phone_number(target) is None,
            raw_target_length=len(target),
        )
        self._sink.publish(record.TOPIC, record)
        _logger.debug("Call log: %s -> %s", redact_for_log(row), record.call_type)

    def handle_sms(self, row: Row) -> None:
        target = safe_str(row.get("address")) or ""
        message_type = message_type_from_code(safe_int(row.get("type")))
        person = safe_int(row.get("person"))
        is_contact = person is not None and person > 0
        record = PhoneSms(
            event_time=epoch_seconds(row[DATE_FIELD]),
            received_time=self._clock(),
            anonymized_target_key=self._hasher.hash(target),
            message_type=message_type,
            body_length=len(safe_str(row.get("body")) or ""),
            # The sender is only known for incoming messages.
            sender_is_known_contact=is_contact if message_type == MessageType.INCOMING else None,
            target_is_anonymous_non_numeric=numeric_phone_number(target) is None,
            raw_target_length=len(target),
        )
        self._sink.publish(record.TOPIC, record)
        _logger.debug("SMS log: %s -> %s", redact_for_log(row), record.message_type)
