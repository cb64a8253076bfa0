"""Optimistic board updates with rollback.

A client applies a mutation locally before the store confirms it and falls
back to the last known-good snapshot when the store rejects the write. State
is a plain ``{lead_id: {field: value}}`` mapping so this stays independent of
any rendering layer. Nothing here mutates its inputs.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

BoardState = dict[str, dict[str, Any]]


@dataclass(frozen=True)
class LeadMutation:
    """Set ``changes`` on one lead; ``remove=True`` drops it (bulk delete)."""
    lead_id: str
    changes: dict[str, Any] = field(default_factory=dict)
    remove: bool = False


def snapshot(state: BoardState, mutation: LeadMutation) -> BoardState:
    """The entries ``mutation`` touches, as they are now (missing entries map to None)."""
    entry = state.get(mutation.lead_id)
    return {mutation.lead_id: copy.deepcopy(entry)}


def apply_optimistic(state: BoardState, mutation: LeadMutation) -> BoardState:
    new_state = dict(state)
    if mutation.remove:
        new_state.pop(mutation.lead_id, None)
        return new_state
    entry = dict(state.get(mutation.lead_id) or {})
    entry.update(copy.deepcopy(mutation.changes))
    new_state[mutation.lead_id] = entry
    return new_state


def rollback(state: BoardState, saved: BoardState) -> BoardState:
    """Restore the snapshotted entries; leads the snapshot doesn't mention are left alone."""
    new_state = dict(state)
    for lead_id, entry in saved.items():
        if entry is None:
            new_state.pop(lead_id, None)
        else:
            new_state[lead_id] = copy.deepcopy(entry)
    return new_state


async def run_optimistic(
    state: BoardState,
    mutation: LeadMutation,
    commit: Callable[[LeadMutation], Awaitable[Any]],
) -> tuple[BoardState, bool]:
    """Apply locally, then commit. Returns ``(state, committed)``.

    On a rejected commit the returned state is the pre-mutation one for the
    touched lead; the error is logged for the operator-facing message.
    """
    saved = snapshot(state, mutation)
    speculative = apply_optimistic(state, mutation)
    try:
        await commit(mutation)
    except Exception as e:
        logger.warning("Optimistic update for lead %s rolled back: %s", mutation.lead_id, e)
        return rollback(speculative, saved), False
    return speculative, True
