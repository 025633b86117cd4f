import uuid

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from tabledata.db.session import Base
from tabledata.models.common import MetaRecord, TitleMixin


class MetaTable(Base, MetaRecord, TitleMixin):
    __tablename__ = "meta_tables"

    base_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    table_name: Mapped[str] = mapped_column(String(255), nullable=False)
