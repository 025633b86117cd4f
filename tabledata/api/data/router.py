from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from tabledata.core.deps import get_current_user
from tabledata.db.session import get_db
from tabledata.schemas.data import DataQueryParams
from tabledata.services.data_table import (
    data_count_service,
    data_delete_service,
    data_insert_service,
    data_list_service,
    data_read_service,
    data_update_service,
)

router = APIRouter()


def _multi(request: Request, name: str) -> list[str]:
    # Accepts ?sort=a,b as well as repeated ?sort=a&sort=b and ?sort[]=a.
    return request.query_params.getlist(name) + request.query_params.getlist(f"{name}[]")


def _query_params(request: Request, view_id: str | None) -> DataQueryParams:
    return DataQueryParams(
        view_id=view_id,
        fields=_multi(request, "fields"),
        sort=_multi(request, "sort"),
        where=request.query_params.get("where"),
        offset=request.query_params.get("offset"),
        limit=request.query_params.get("limit"),
    )


@router.get("/{table_id}/rows")
def list_rows(
    table_id: str,
    request: Request,
    response: Response,
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    started = time.perf_counter()
    result = data_list_service(table_id, _query_params(request, view_id), db, user)
    response.headers["X-DB-Response"] = f"{time.perf_counter() - started:.4f}"
    return result


@router.get("/{table_id}/rows/count")
def count_rows(
    table_id: str,
    request: Request,
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return data_count_service(table_id, _query_params(request, view_id), db, user)


@router.get("/{table_id}/rows/{row_id}")
def read_row(
    table_id: str,
    row_id: str,
    request: Request,
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return data_read_service(table_id, row_id, db, user, view_id=view_id, fields=_multi(request, "fields"))


@router.post("/{table_id}/rows")
def insert_rows(
    table_id: str,
    payload: Any = Body(...),
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return data_insert_service(table_id, payload, db, user, view_id=view_id)


@router.patch("/{table_id}/rows")
def update_rows(
    table_id: str,
    payload: Any = Body(...),
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return data_update_service(table_id, payload, db, user, view_id=view_id)


@router.delete("/{table_id}/rows")
def delete_rows(
    table_id: str,
    payload: Any = Body(...),
    view_id: str | None = Query(default=None, alias="viewId"),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    return data_delete_service(table_id, payload, db, user, view_id=view_id)
