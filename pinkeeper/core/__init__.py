"""
PinKeeper Core Module

Discovery and reconciliation loop:
- Swarm readiness gating
- DNSLink version discovery
- Pin / prune reconciliation
- Tick scheduling and diagnostic watchdog
"""

from pinkeeper.core.content_addressing import ContentIdentifier, PinRecord, RetentionClass, direct_pins
from pinkeeper.core.errors import (
    ConfigError,
    PinAddError,
    PinKeeperError,
    PinListError,
    PinRemoveError,
    ReadinessTimeout,
    ResolutionError,
    StoreError,
)
from pinkeeper.core.readiness import ReadinessGate
from pinkeeper.core.reconciler import Reconciler, ReconcilerState, TickResult
from pinkeeper.core.resolver import DNSLinkResolver
from pinkeeper.core.scheduler import Scheduler

__all__ = [
    "ContentIdentifier",
    "PinRecord",
    "RetentionClass",
    "direct_pins",
    "ConfigError",
    "PinAddError",
    "PinKeeperError",
    "PinListError",
    "PinRemoveError",
    "ReadinessTimeout",
    "ResolutionError",
    "StoreError",
    "ReadinessGate",
    "Reconciler",
    "ReconcilerState",
    "TickResult",
    "DNSLinkResolver",
    "Scheduler",
]
