from __future__ import annotations

from sqlalchemy import ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.models.base import Base, TimestampMixin


class Doctor(Base, TimestampMixin):
    """Doctor assigned to exactly one location."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    contact_number: Mapped[str] = mapped_column(Text, nullable=False)
    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id"), index=True, nullable=False
    )
    # free-text schedule, e.g. "Mon-Fri 9AM-5PM"
    timings: Mapped[str] = mapped_column(Text, nullable=False)
