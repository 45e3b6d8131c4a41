"""Contact form message model."""

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from dealcatalog.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class ContactMessage(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A message left through the public contact form."""

    __tablename__ = "contact_messages"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Marked read in the admin panel"
    )

    __table_args__ = (Index("idx_contact_messages_created", "created_at"),)

    def __repr__(self) -> str:
        return f"<ContactMessage(id={self.id}, email='{self.email}', read={self.read})>"
