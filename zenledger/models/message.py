from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from zenledger.database import Base
from zenledger.types import UTCDateTime


class MessageRow(Base):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    family_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    from_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    from_role: Mapped[str] = mapped_column(String(10), nullable=False)
    to_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reply_to_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    def __repr__(self) -> str:
        return f"<MessageRow(id={self.id}, from_id={self.from_id}, to_id={self.to_id})>"
