from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint, func, text
from sqlalchemy.orm import relationship

from boom_booking.core.database import Base

ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"
ROLE_USER = "user"
ROLE_SUPER_ADMIN = "super_admin"
USER_ROLES = (ROLE_ADMIN, ROLE_STAFF, ROLE_USER, ROLE_SUPER_ADMIN)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
        # Super-admins have no tenant, so the composite constraint above never
        # fires for them (NULL != NULL); keep their emails unique separately.
        Index(
            "uq_users_super_admin_email",
            "email",
            unique=True,
            sqlite_where=text("tenant_id IS NULL"),
            postgresql_where=text("tenant_id IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True)

    email = Column(String(255), nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ROLE_USER)  # admin | staff | user | super_admin
    is_active = Column(Boolean, nullable=False, default=True)

    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="users")
