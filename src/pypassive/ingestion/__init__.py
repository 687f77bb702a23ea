"""Ingestion layer.

This package contains the record-source contract, the watermark poller
that drains sources incrementally, and the normalization helpers shared
by every collector.
"""

__all__: list[str] = []
