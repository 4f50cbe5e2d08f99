"""Global search routers - one per product, same result shape."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from chronus.core.deps import get_current_session, get_db, is_member_scoped
from chronus.schemas.auth import UserSession
from chronus.schemas.search import SearchResponse
from chronus.services import search_service

crm_router = APIRouter()
dev_router = APIRouter()


@crm_router.get("", response_model=SearchResponse)
def search_crm(
    q: str = Query("", max_length=200),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Customers, leads and tickets matching `q`."""
    try:
        results = search_service.search_crm(db, session.org_id, q)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"results": results}


@dev_router.get("", response_model=SearchResponse)
def search_dev(
    q: str = Query("", max_length=200),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Projects and tasks matching `q`. DEV users only see their projects."""
    member_user_id = session.user_id if is_member_scoped(session) else None
    try:
        results = search_service.search_dev(db, session.org_id, q, member_user_id=member_user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"results": results}
