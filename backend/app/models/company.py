from sqlalchemy import Column, String, DateTime, Uuid
from datetime import datetime
import uuid
from ..core.db import Base

class Company(Base):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    # One company per user; the users table lives in the auth service
    owner_user_id = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
