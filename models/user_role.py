from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from database import Base

APP_ROLES = ("admin", "user")


class UserRole(Base):
    __tablename__ = 'user_roles'

    id = Column(Integer, primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)  # Auth provider user id (JWT sub)
    role = Column(String(16), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now(), server_default=func.now())

    __table_args__ = (
        UniqueConstraint('user_id', 'role', name='uq_user_roles_user_id_role'),
    )
