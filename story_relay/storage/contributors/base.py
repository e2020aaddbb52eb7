from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, UniqueConstraint, text as sa_text
from sqlalchemy.orm import Mapped, mapped_column

from story_relay.storage.base import Base


class StoryContributor(Base):
    __tablename__ = "story_contributors"
    __table_args__ = (UniqueConstraint("story_id", "user_id", name="uq_story_contributors_story_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    story_id: Mapped[int] = mapped_column(ForeignKey("stories.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    contributed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=sa_text("CURRENT_TIMESTAMP"), nullable=False
    )
