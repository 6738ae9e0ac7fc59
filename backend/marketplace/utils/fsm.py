from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Usage:
    from marketplace.utils.fsm import TransitionValidator
    ORDER_FSM = TransitionValidator({
        'PENDING': {'CANCELLATION_REQUESTED'},
        'CANCELLATION_REQUESTED': {'CANCELLATION_REQUESTED', 'APPROVED', 'PENDING'},
        'APPROVED': set(),
    })
    ORDER_FSM.assert_can_transition(current_status, target_status)
    ORDER_FSM.sources_for(target_status)  # statuses allowed to move into target

Raises InvalidTransitionError if invalid.
"""
from typing import Dict, Set, Tuple
from marketplace.utils.exceptions import InvalidTransitionError


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            raise InvalidTransitionError(current, target, self.field_name)
        return True

    def sources_for(self, target: str) -> Tuple[str, ...]:
        # Sorted so the resulting store filter is deterministic
        return tuple(sorted(src for src, targets in self.graph.items() if target in targets))

__all__ = ['TransitionValidator']
