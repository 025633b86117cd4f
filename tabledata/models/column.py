import uuid

from sqlalchemy import JSON, Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tabledata.db.session import Base
from tabledata.models.common import MetaRecord, TitleMixin


class MetaColumn(Base, MetaRecord, TitleMixin):
    __tablename__ = "meta_columns"
    __table_args__ = (UniqueConstraint("table_id", "title", name="uq_meta_columns_table_title"),)

    table_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    column_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uidt: Mapped[str] = mapped_column(String(50), nullable=False, default="SingleLineText")
    primary_key: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_increment: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    nullable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    options: Mapped[list | None] = mapped_column(JSON, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
