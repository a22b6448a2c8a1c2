"""Department model: canonical department with its matching keywords."""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime

from app.database import Base
from app.database_types import KeywordList


class Department(Base):
    __tablename__ = "departments"
    
    # Autoincrement id doubles as the table's insertion order (classifier scan order)
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    keywords = Column(KeywordList, nullable=False, default=list)
    
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
