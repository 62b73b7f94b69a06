from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import TIMESTAMP, String, Integer, Text, JSON
from app.core.base import Base, TimestampedMixin

class RefreshRun(Base, TimestampedMixin):
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), index=True)
    finished_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    status: Mapped[str] = mapped_column(String(16))  # success | failed
    videos_count: Mapped[int] = mapped_column(Integer, default=0)
    folders_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_folders: Mapped[list] = mapped_column(JSON, default=list)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
