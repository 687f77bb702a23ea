#!/usr/bin/env python3
"""Drain a sqlite call/message log through the pypassive pipeline.

Reads every call and message newer than the persisted watermarks,
anonymizes them exactly as the agent does and prints one JSON record
per line. Useful to inspect what an installation would publish.

Usage
-----
::

    python scripts/drain_log.py logs.db --store state.json --history 86400

Options::

    --store FILE         JSON state file (watermarks, salt); in-memory if omitted
    --history SECONDS    How far back a first run starts (default: 0)
    --page-limit N       Rows per query (default: 1000)
    --calls-table NAME   Call log table (default: calls)
    --sms-table NAME     Message table (default: sms)
    --skip-calls         Skip the call log
    --skip-sms           Skip the message log
    --skip-unread        Skip the unread count
    --output FILE        Write output to FILE instead of stdout
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pypassive import PassiveConfig  # noqa: E402
from pypassive._crypto.hashing import HashGenerator, IdentityHasher  # noqa: E402
from pypassive.collectors.phone_log import CALL_COLUMNS, SMS_COLUMNS, PhoneLogCollector  # noqa: E402
from pypassive.ingestion.sources import SqliteRecordSource  # noqa: E402
from pypassive.sinks import MemorySink  # noqa: E402
from pypassive.state.store import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore  # noqa: E402
from pypassive.state.watermark import WatermarkStore  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Print anonymized call/message records harvested from a sqlite log.",
    )
    parser.add_argument("database", help="sqlite database holding the logs")
    parser.add_argument("--store", help="JSON state file (watermarks, salt)")
    parser.add_argument("--history", type=float, default=0.0, help="Seconds a first run reaches back")
    parser.add_argument("--page-limit", type=int, default=None, help="Rows per query")
    parser.add_argument("--calls-table", default="calls", help="Call log table")
    parser.add_argument("--sms-table", default="sms", help="Message table")
    parser.add_argument("--skip-calls", action="store_true", help="Skip the call log")
    parser.add_argument("--skip-sms", action="store_true", help="Skip the message log")
    parser.add_argument("--skip-unread", action="store_true", help="Skip the unread count")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, object] = {"log_history": args.history}
    if args.page_limit is not None:
        overrides["page_limit"] = args.page_limit
    config = PassiveConfig.from_env(**overrides)

    store: KeyValueStore
    store = JsonFileKeyValueStore(args.store) if args.store else MemoryKeyValueStore()

    sms = SqliteRecordSource.from_path(args.database, args.sms_table, [*SMS_COLUMNS, "read"])
    sink = MemorySink()
    collector = PhoneLogCollector(
        SqliteRecordSource.from_path(args.database, args.calls_table, CALL_COLUMNS),
        sms,
        sms,
        IdentityHasher(HashGenerator(store)),
        sink,
        WatermarkStore(store, history_ms=int(config.log_history * 1000)),
        interval=config.log_interval,
        page_limit=config.page_limit,
    )

    collector.on_start()
    if not args.skip_calls:
        collector.process_call_log()
    if not args.skip_sms:
        collector.process_sms_log()
    if not args.skip_unread:
        collector.process_unread_sms()

    lines = [json.dumps({"topic": record.TOPIC, "value": record.to_payload()}) for record in sink.records()]
    text = "\n".join(lines)
    if args.output:
        Path(args.output).write_text(text + "\n" if text else "", encoding="utf-8")
        print(f"{len(lines)} records written to {args.output}", file=sys.stderr)
    elif text:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
