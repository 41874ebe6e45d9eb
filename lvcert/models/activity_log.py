from typing import Any, Dict, Optional
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import String, Text, JSON, DateTime, ForeignKey, func
from lvcert.db.base import Base

class ActivityLog(Base):
    """Trilha de auditoria: somente inserção, uma linha por transição concluída."""
    __tablename__ = "activity_logs"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    actor_id: Mapped[int] = mapped_column(ForeignKey("admins.id"), index=True)
    action: Mapped[str] = mapped_column(String(50), index=True)
    entity: Mapped[str] = mapped_column(String(50))
    # ids de lote vão concatenados por vírgula
    entity_id: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)

    actor = relationship("Admin")
