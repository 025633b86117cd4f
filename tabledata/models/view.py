import uuid

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tabledata.db.session import Base
from tabledata.models.common import MetaRecord, TitleMixin


class MetaView(Base, MetaRecord, TitleMixin):
    __tablename__ = "meta_views"

    # Null means the view is not bound to a particular table.
    table_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)


class ViewFilter(Base, MetaRecord):
    __tablename__ = "meta_view_filters"

    view_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True, index=True)
    is_group: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    column_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    comparison_op: Mapped[str | None] = mapped_column(String(30), nullable=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    logical_op: Mapped[str] = mapped_column(String(10), nullable=False, default="and")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ViewSort(Base, MetaRecord):
    __tablename__ = "meta_view_sorts"

    view_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    column_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    direction: Mapped[str] = mapped_column(String(4), nullable=False, default="asc")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ViewColumn(Base, MetaRecord):
    __tablename__ = "meta_view_columns"

    view_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    column_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    show: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
