"""ORM records for the placement lifecycle."""

from placement_kernel.models.candidate import Candidate
from placement_kernel.models.client import Client
from placement_kernel.models.offer import Offer
from placement_kernel.models.placement_safety import PlacementSafetyRecord
from placement_kernel.models.timeline import ActivityType, TimelineEntry

__all__ = [
    "ActivityType",
    "Candidate",
    "Client",
    "Offer",
    "PlacementSafetyRecord",
    "TimelineEntry",
]
