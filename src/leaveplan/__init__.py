"""Leave Day Optimizer.

Recommend which workdays to take as leave so that weekends and public
holidays bridge into the longest, most efficient breaks.
"""

from leaveplan.holidays import HolidayRecord, get_holidays, load_holiday_file, us_holidays
from leaveplan.optimizer import (
    Break,
    BridgeCandidate,
    FreeBlock,
    LeaveOptimizer,
    LeavePlan,
    OptimizerConfig,
    PriorityPeriod,
    classify_free_days,
    find_bridge_candidates,
    find_free_blocks,
    optimize,
    parse_priority,
    reconstruct_breaks,
)

__all__ = [
    "Break",
    "BridgeCandidate",
    "FreeBlock",
    "HolidayRecord",
    "LeaveOptimizer",
    "LeavePlan",
    "OptimizerConfig",
    "PriorityPeriod",
    "classify_free_days",
    "find_bridge_candidates",
    "find_free_blocks",
    "get_holidays",
    "load_holiday_file",
    "optimize",
    "parse_priority",
    "reconstruct_breaks",
    "us_holidays",
]
