"""
Controllers - class-based handlers with route-declaring actions.
"""

from .base import Controller, Halt
from .decorators import route, ActionRecord, get_action_record, iter_actions
from .factory import ControllerFactory

__all__ = [
    "Controller",
    "Halt",
    "route",
    "ActionRecord",
    "get_action_record",
    "iter_actions",
    "ControllerFactory",
]
