"""Contact-list change collector."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence

from pypassive._constants import CONTACT_IDS_KEY, CONTACT_LOOKUPS_KEY, PAGE_LIMIT
from pypassive._processor import Step
from pypassive.collectors._base import PeriodicCollector
from pypassive.exceptions import LifecycleError
from pypassive.ingestion.poller import scan_keys
from pypassive.ingestion.sources import RecordSource
from pypassive.models.records import PhoneContactList
from pypassive.sinks import Sink
from pypassive.state.membership import SetDiffTracker
from pypassive.state.store import KeyValueStore

_logger = logging.getLogger(__name__)

#: Stable per-contact key the enumeration pages on.
LOOKUP_FIELD = "lookup"


class ContactListCollector(PeriodicCollector):
    """Publishes how many contacts were added and removed each cycle.

    Contact lookup keys are only held as the previous snapshot needed for
    the next diff; records carry counts only.
    """

    name = "contacts"

    def __init__(
        self,
        contacts: RecordSource,
        store: KeyValueStore,
        sink: Sink,
        *,
        interval: float,
        page_limit: int = PAGE_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._contacts = contacts
        self._store = store
        self._sink = sink
        self._page_limit = page_limit
        self._clock = clock
        self._tracker: SetDiffTracker | None = None
        super().__init__(interval)

    def steps(self) -> Sequence[Step]:
        return [self.process_contacts]

    def on_start(self) -> None:
        # Contacts used to be keyed on their row id, which is not stable.
        if CONTACT_IDS_KEY in self._store:
            self._store.remove(CONTACT_IDS_KEY)
            _logger.info("Removed legacy contact id snapshot")
        self._tracker = SetDiffTracker(self._store, CONTACT_LOOKUPS_KEY)

    def _is_cancelled(self) -> bool:
        return self.is_done

    def process_contacts(self) -> None:
        tracker = self._tracker
        if tracker is None:
            raise LifecycleError("contacts collector has not been started")
        lookups = scan_keys(self._contacts, LOOKUP_FIELD, self._page_limit, is_cancelled=self._is_cancelled)
        if lookups is None:
            _logger.info("Contact enumeration cancelled; keeping previous snapshot")
            return

        result = tracker.update(lookups)
        now = self._clock()
        record = PhoneContactList(
            event_time=now,
            received_time=now,
            added=result.added,
            removed=result.removed,
            total_count=result.total,
        )
        self._sink.publish(record.TOPIC, record)
        _logger.info("Contacts: %s added, %s removed, %d total", result.added, result.removed, result.total)
