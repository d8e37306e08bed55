from .clock import Clock, AsyncioClock, VirtualClock, TimerHandle
from .progress import (
    ProgressSource, RandomProgressSource, FixedProgressSource, ChunkedProgressSource
)
from .machine import TransferStateMachine
from .connection import SimulatedConnection, ConnectionStatus

__all__ = [
    'Clock',
    'AsyncioClock',
    'VirtualClock',
    'TimerHandle',
    'ProgressSource',
    'RandomProgressSource',
    'FixedProgressSource',
    'ChunkedProgressSource',
    'TransferStateMachine',
    'SimulatedConnection',
    'ConnectionStatus'
]
