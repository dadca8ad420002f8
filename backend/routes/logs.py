# backend/routes/logs.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict

from database import get_db
from models.log import Log

router = APIRouter(prefix="/logs", tags=["Logs"])


class SyncLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ts: datetime
    user_id: Optional[int] = None
    action: str
    resource: str
    status: str
    meta: Optional[Any] = None


class SyncLogPage(BaseModel):
    items: List[SyncLogOut]
    total: int
    page: int
    page_size: int


# Synchronizer audit trail: one row per cart/wishlist mutation or cache reset.
# status=DEGRADED lists the writes that fell back to the local cache.
@router.get("", response_model=SyncLogPage)
def get_sync_logs(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    action: Optional[str] = Query(None, description="Action code, e.g. CART_ADD or WISHLIST_CLEAR"),
    status: Optional[str] = Query(None, description="SUCCESS or DEGRADED"),
    user_id: Optional[int] = Query(None, description="Signed-in shopper id"),
    db: Session = Depends(get_db),
):
    query = db.query(Log)
    if action:
        query = query.filter(Log.action == action.upper())
    if status:
        query = query.filter(Log.status == status.upper())
    if user_id is not None:
        query = query.filter(Log.user_id == user_id)

    total = query.count()
    rows = (
        query.order_by(Log.ts.desc(), Log.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {"items": rows, "total": total, "page": page, "page_size": page_size}
