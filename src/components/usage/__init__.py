"""
Usage component - monthly audit counters.
"""

from .component import UsageAccountant, remaining_runs, run
from .models import RecordRunInput, UsageSummary
from .ports import UsageRepoPort

__all__ = [
    "UsageAccountant",
    "remaining_runs",
    "run",
    "RecordRunInput",
    "UsageSummary",
    "UsageRepoPort",
]
