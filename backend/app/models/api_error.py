"""Upstream failures recorded for the admin error log."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, DateTime

from app.database import Base
from app.database_types import GUID


class ApiError(Base):
    __tablename__ = "api_errors"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    employer_id = Column(GUID, nullable=True, index=True)
    employer_name = Column(String, nullable=True)
    source_kind = Column(String, nullable=False)  # ashby | greenhouse | persistence
    error_message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
