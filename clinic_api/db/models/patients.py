"""SQLAlchemy ORM models for patients."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, String, UniqueConstraint, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from clinic_api.db.base import Base


class Patient(Base):
    """
    Person who books sessions.

    Public bookings look the patient up by phone and create one on first contact.
    """

    __tablename__ = "patients"
    __table_args__ = (
        UniqueConstraint("phone", name="uq_patient_phone"),
        Index("idx_patients_name", "full_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, server_default=text("true"), default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )
