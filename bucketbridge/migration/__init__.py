"""
Migration layer: selection, listing, probing and the transfer engine.

Usage:
    >>> from bucketbridge.migration import (
    ...     ConnectivityProbe, Direction, LocationMap, ObjectLister, SelectionSet, TransferEngine,
    ... )
    >>>
    >>> await ConnectivityProbe(relay).require_available()
    >>> selection = SelectionSet()
    >>> selection.load("products", await ObjectLister(relay).list("products"))
    >>> selection.select_all()
    >>> engine = TransferEngine(relay, supabase, LocationMap.default())
    >>> result = await engine.run(selection, "products", Direction.SELF_HOSTED_TO_MANAGED)
"""

from .engine import TransferEngine
from .listing import ObjectLister
from .locations import Direction, LocationMap
from .mime import decode_payload, guard_integrity, infer_content_type, is_page_content_type
from .probe import ConnectivityProbe
from .selection import SelectionSet
from .state_machine import TransferStateMachine
from .types import (
    CancelToken,
    RunOutcome,
    TransferConfig,
    TransferEvent,
    TransferItem,
    TransferResult,
    TransferRun,
    TransferStatus,
    TransferSummary,
)
from .urls import normalize_storage_url, parse_storage_url

__all__ = [
    "CancelToken",
    "ConnectivityProbe",
    "Direction",
    "LocationMap",
    "ObjectLister",
    "RunOutcome",
    "SelectionSet",
    "TransferConfig",
    "TransferEngine",
    "TransferEvent",
    "TransferItem",
    "TransferResult",
    "TransferRun",
    "TransferStateMachine",
    "TransferStatus",
    "TransferSummary",
    "decode_payload",
    "guard_integrity",
    "infer_content_type",
    "is_page_content_type",
    "normalize_storage_url",
    "parse_storage_url",
]
