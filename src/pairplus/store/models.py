"""SQLAlchemy model backing the SQL document store."""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from pairplus.common.models import Base, TimestampMixin


class DocumentModel(Base, TimestampMixin):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(100), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
