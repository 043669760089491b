from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func
from sqlalchemy.orm import relationship

from boom_booking.core.database import Base


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    slug = Column(String(100), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)

    # Contato
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(50), nullable=False, default="US")

    timezone = Column(String(50), nullable=False, default="America/New_York")
    currency = Column(String(3), nullable=False, default="USD")

    # Plano
    subscription_plan = Column(String(50), nullable=False, default="free")
    max_rooms = Column(Integer, nullable=False, default=1)
    max_bookings_per_month = Column(Integer, nullable=False, default=50)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    rooms = relationship("Room", back_populates="tenant", passive_deletes=True)
    users = relationship("User", back_populates="tenant", passive_deletes=True)
    business_hours = relationship(
        "BusinessHours",
        back_populates="tenant",
        order_by="BusinessHours.day_of_week",
        passive_deletes=True,
    )
