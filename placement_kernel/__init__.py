"""
Placement Kernel - candidate placement and revenue lifecycle.

Keeps four records mutually consistent as hiring events occur:
- Candidate pipeline stage (the authoritative status)
- Offer record and its own status lifecycle
- Recognised placement revenue and its accounting month
- Replacement-guarantee safety classification

Every mutating operation runs through LifecycleOrchestrator as one
transaction and appends an immutable timeline entry.
"""

__version__ = "0.1.0"
