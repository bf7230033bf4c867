"""
Drill delivery: persistence, session control and the terminal CLI.

Components:
- StateStore / MemoryStore: learner-state persistence
- engine_state: pure session state machine
- TimerSlot: cancelable delayed callbacks on the event loop
- PendingKeyBuffer: multi-key answers (accidentals, two-digit numbers)
- DrillSession: wires a quiz mode to the learner model
- drill_cli: typer app (``fluency`` command)
"""

from .engine_state import EnginePhase, EngineState, KeyAction, initial_engine_state, route_key
from .key_buffer import PendingKeyBuffer
from .session import DrillSession, QuizMode
from .state_store import MemoryStore, StateStore, StorageAdapter
from .timers import TimerSlot

__all__ = [
    # Persistence
    "StorageAdapter",
    "MemoryStore",
    "StateStore",
    # Session
    "DrillSession",
    "QuizMode",
    "EnginePhase",
    "EngineState",
    "KeyAction",
    "initial_engine_state",
    "route_key",
    # Input and timing
    "PendingKeyBuffer",
    "TimerSlot",
]
