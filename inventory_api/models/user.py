import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Uuid

from inventory_api.lib.clock import utcnow
from inventory_api.lib.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(50), default="employee")  # admin, employee, assistant_manager
    department = Column(String(50), nullable=True)  # Sales, Call Center, Reception, ...
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
