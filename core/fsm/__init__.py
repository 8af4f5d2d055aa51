"""
FSM (Finite State Machine) for the single-pair trade cycle

Components:
- phases.py: Status / Action Enum definitions
- state.py: Session and TradingContext dataclasses, set_status helper
- transitions.py: Pure transition rules and decide()
- actions.py: Status handlers (start/wait/hold/sell/buy)
- machine.py: TradeStateMachine orchestrator
- results.py: OrderResult (Ok/Err)
- exceptions.py: Exchange error kinds
"""

from .machine import TickOutcome, TradeStateMachine
from .phases import Action, Status
from .results import OrderErrorKind, OrderResult
from .state import Session, TradingContext, set_status
from .transitions import Decision, decide, next_status

__all__ = [
    'Status',
    'Action',
    'Session',
    'TradingContext',
    'set_status',
    'Decision',
    'decide',
    'next_status',
    'OrderResult',
    'OrderErrorKind',
    'TradeStateMachine',
    'TickOutcome',
]
