from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column

from story_relay.storage.base import Base


class CheckoutEntry(Base):
    __tablename__ = "checkout_log"
    __table_args__ = (
        Index("idx_checkout_log_story_id", "story_id"),
        Index("idx_checkout_log_user_id", "user_id"),
        # At most one open checkout per story.
        Index(
            "uq_checkout_log_open_story",
            "story_id",
            unique=True,
            sqlite_where=sa_text("checked_in_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[int] = mapped_column(ForeignKey("stories.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    checked_out_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    checked_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_checkin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    words_added: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
