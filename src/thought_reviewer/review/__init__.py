"""
Thought Review Scheduler - Review Cycle Module

Claims the pending batch and fans it out to the analyzer and the digester.
"""

from .adapters import AdapterError, Analyzer, Digester
from .drainer import (
    AdapterOutcome,
    AdapterStatus,
    CycleReport,
    CycleStatus,
    QueueDrainer,
    select_for_analysis,
)

__all__ = [
    'AdapterError',
    'Analyzer',
    'Digester',
    'AdapterOutcome',
    'AdapterStatus',
    'CycleReport',
    'CycleStatus',
    'QueueDrainer',
    'select_for_analysis',
]
