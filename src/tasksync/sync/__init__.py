"""Reconciliation and sync resolution between memory and the task file."""

from tasksync.sync.flow import Choice, Resolution, SyncFlow, SyncOutcome, SyncState
from tasksync.sync.reconcile import (
    Divergence,
    DivergenceKind,
    MatchOutcome,
    Side,
    TextMatcher,
    reconcile,
)

__all__ = [
    # Reconcile
    "Divergence",
    "DivergenceKind",
    "MatchOutcome",
    "Side",
    "TextMatcher",
    "reconcile",
    # Flow
    "Choice",
    "Resolution",
    "SyncFlow",
    "SyncOutcome",
    "SyncState",
]
