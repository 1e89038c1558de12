"""
Recalculation run ledger
One row per batch run so operators can see freshness and partial failures
"""
from sqlalchemy import Column, Integer, String, Float, DateTime, Text
from datetime import datetime

from signal_pricing.models.base import Base


class RecalculationRun(Base):
    """Summary of a batch recalculation run"""
    __tablename__ = "recalculation_runs"

    id = Column(Integer, primary_key=True, index=True)

    status = Column(String, index=True)  # idle, idle_with_errors, failed
    trigger = Column(String, default="scheduler")  # scheduler, api, manual

    total = Column(Integer, default=0)
    updated = Column(Integer, default=0)
    errored = Column(Integer, default=0)
    degraded = Column(Integer, default=0)  # Products computed from fallback signals

    started_at = Column(DateTime, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_ms = Column(Float, default=0.0)

    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "trigger": self.trigger,
            "total": self.total,
            "updated": self.updated,
            "errored": self.errored,
            "degraded": self.degraded,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "error_message": self.error_message,
        }
