"""
Module: placement_kernel.models.client
Responsibility: ORM persistence for the guarantee terms of a hiring client.
Architecture position: Kernel > Models.  May import from db/ only.

The client record is owned by the CRM side of the platform; the lifecycle
reads exactly two fields from it: ``replacement_guarantee_days`` and
``fee_percentage``.  Either may be left unset, in which case the
configured defaults apply (90 days, 8.33%).  The fee is copied onto each
offer when the offer is created, so later edits here never change past
placements.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TrackedBase
from placement_kernel.db.types import percentage_column_type


class Client(TrackedBase):
    """A hiring client and the commercial terms that apply to placements."""

    __tablename__ = "clients"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    replacement_guarantee_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    fee_percentage: Mapped[Decimal | None] = mapped_column(
        percentage_column_type(),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Client {self.name}>"
