from pydantic import BaseModel
from typing import Any, List, Optional

class DataQueryParams(BaseModel):
    view_id: Optional[str] = None
    fields: List[str] = []
    sort: List[str] = []
    where: Optional[str] = None
    offset: Any = None
    limit: Any = None

class PageInfo(BaseModel):
    totalRows: int
    page: int
    pageSize: int
    isFirstPage: bool
    isLastPage: bool
