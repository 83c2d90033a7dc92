"""Optimistic-concurrency reconciliation of remote objects.

``engine`` holds the generic retry-on-conflict protocol; ``mutations`` builds the
pure mutation functions the call sites pass to it, using the value-equality
checks in ``predicates``.
"""

from __future__ import annotations

from .engine import Mutation, ReconcileResult, ResourceReconciler
from .mutations import (
    ensure_corefile_stanza,
    ensure_policy_rule,
    ensure_service_port,
    ensure_sidecar,
    remove_data_entry,
    set_data_entry,
)

__all__ = [
    "Mutation",
    "ReconcileResult",
    "ResourceReconciler",
    "ensure_corefile_stanza",
    "ensure_policy_rule",
    "ensure_service_port",
    "ensure_sidecar",
    "remove_data_entry",
    "set_data_entry",
]
