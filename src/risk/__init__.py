"""
Risk module: pool-level risk state machine and state-change notifications.
"""

from .notifications import StateChangeListener, StateChangeNotifier
from .schema import RiskLevel, RiskState, StateChangeEvent
from .state_machine import RiskStateMachine

__all__ = [
    "RiskLevel",
    "RiskState",
    "RiskStateMachine",
    "StateChangeEvent",
    "StateChangeListener",
    "StateChangeNotifier",
]
