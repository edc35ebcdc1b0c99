"""Read-only selectors for the placement kernel."""

from placement_kernel.selectors.placement_selector import (
    MonthlyRevenue,
    PlacementSelector,
    WatchListItem,
)
from placement_kernel.selectors.timeline_selector import (
    TimelineItem,
    TimelineSelector,
    TimelineTrace,
)

__all__ = [
    "MonthlyRevenue",
    "PlacementSelector",
    "TimelineItem",
    "TimelineSelector",
    "TimelineTrace",
    "WatchListItem",
]
