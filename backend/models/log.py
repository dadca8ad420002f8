from sqlalchemy import Column, Integer, String, DateTime, JSON, func
from database import Base

# Represents sync diagnostic logs: mutations, degradations and cache repairs
class Log(Base):
    __tablename__ = "sync_logs"

    id = Column(Integer, primary_key=True, index=True)

    # Event timestamp and core action details
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(50), index=True)
    resource = Column(String(50), index=True)
    status = Column(String(20), index=True)

    # JSON container for flexible context data
    meta = Column(JSON, nullable=True)
