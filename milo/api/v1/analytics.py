from fastapi import APIRouter, Depends, Header, Query

from milo.analytics import db as analytics_db
from milo.core.security import check_api_key

router = APIRouter()


def _auth(x_api_key: str | None = Header(default=None, alias="X-API-Key")):
    check_api_key(x_api_key)


@router.get("/analytics/resume-summary")
def resume_summary(_: None = Depends(_auth)):
    return analytics_db.get_resume_summary()


@router.get("/analytics/resume-runs")
def resume_runs(
    limit: int = Query(default=20, ge=1, le=200),
    _: None = Depends(_auth),
):
    return analytics_db.get_latest_resume_runs(limit=limit)


@router.get("/analytics/ai-runs")
def ai_runs(
    limit: int = Query(default=20, ge=1, le=200),
    _: None = Depends(_auth),
):
    return analytics_db.get_latest_ai_runs(limit=limit)
