from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column

from tabledata.db.session import Base
from tabledata.models.common import MetaRecord, TitleMixin


class MetaBase(Base, MetaRecord, TitleMixin):
    __tablename__ = "meta_bases"

    # Empty means the rows live in the primary database.
    connection_url: Mapped[str | None] = mapped_column(Text, nullable=True)
