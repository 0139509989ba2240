from __future__ import annotations
"""Finite state machine helper for enforcing allowed status transitions.

Usage:
    from shopadmin.utils.fsm import TransitionValidator
    ORDER_FSM = TransitionValidator({
        'PENDING': {'CONFIRMED', 'CANCELLED'},
        'CONFIRMED': {'PROCESSING', 'CANCELLED'},
        'CANCELLED': set(),
    })
    ORDER_FSM.assert_can_transition(current_status, target_status)

Aborts with 400 if the transition is not in the graph. Staying in the same
state is always allowed.
"""
from typing import Dict, Set
from flask import abort

class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: str, target: str) -> bool:
        return current == target or target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def is_final(self, state: str) -> bool:
        return not self.graph.get(state)

__all__ = ['TransitionValidator']
