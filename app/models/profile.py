"""ORM models for role profiles created at registration."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID

from app.models.base import Base


class Patient(Base):
    __tablename__ = "patients"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    province = Column(String(64), nullable=True)


class Doctor(Base):
    """Doctor profile; verification_status moves pending -> verified/rejected via admin review."""

    __tablename__ = "doctors"

    id = Column(UUID(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(UUID(as_uuid=False), ForeignKey("users.id"), nullable=False, index=True)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    specialty = Column(String(255), nullable=False, default="")
    hpcsa_number = Column(String(64), nullable=False, default="")
    phone = Column(String(32), nullable=True)
    province = Column(String(64), nullable=False, default="")
    city = Column(String(255), nullable=False, default="")
    zip_code = Column(String(16), nullable=True)
    practice_address = Column(Text, nullable=True)
    qualifications = Column(Text, nullable=True)
    experience = Column(Text, nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    verification_status = Column(String(32), nullable=False, default="pending")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
