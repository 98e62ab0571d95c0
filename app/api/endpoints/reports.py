"""
FastAPI endpoints for report export/import and the history summary.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
import logging

from ..dependencies import get_engine
from ...services.behavior_engine import BehaviorEngine, MalformedImportError
from ...services.behavior_engine.reports import REPORT_FILENAME

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


class ImportResponse(BaseModel):
    imported_sessions: int
    tab_switch_count: int


class LatestSessionModel(BaseModel):
    """Metric breakdown of the most recent session"""
    typing_speed: float
    error_ratio: float
    tab_rate: float
    jitter_rate: float
    burnout_score: int
    ended_at: Optional[int] = None


class SummaryResponse(BaseModel):
    total_sessions: int
    average_burnout: float = Field(..., description="Mean burnout score over all sessions")
    burnout_score: int = Field(..., description="Average burnout, rounded")
    burnout_level: str = Field(..., description="Low, Moderate or High")
    baseline: Dict[str, Any]
    latest: Optional[LatestSessionModel] = None
    trend: Dict[str, List[Any]] = Field(..., description="Rates of the last 8 sessions")
    sessions: List[Dict[str, Any]] = Field(default_factory=list)


@router.get("/export")
def export_report(engine: BehaviorEngine = Depends(get_engine)):
    content = engine.export_report()
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{REPORT_FILENAME}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_report(request: Request, engine: BehaviorEngine = Depends(get_engine)):
    # Raw body read is async; the store write runs off the event loop.
    body = await request.body()
    try:
        report = await run_in_threadpool(engine.import_report, body.decode("utf-8", errors="replace"))
    except MalformedImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Report import failed: {e}", exc_info=True)
        raise
    return ImportResponse(
        imported_sessions=len(report.history),
        tab_switch_count=report.tab_switch_count,
    )


@router.get("/summary", response_model=SummaryResponse)
def history_summary(demo: bool = False, engine: BehaviorEngine = Depends(get_engine)):
    summary = engine.summary(demo=demo)

    latest = None
    if summary.latest is not None:
        latest = LatestSessionModel(
            typing_speed=summary.latest.typing_speed,
            error_ratio=summary.latest.error_ratio,
            tab_rate=summary.latest.tab_rate,
            jitter_rate=summary.latest.jitter_rate,
            burnout_score=summary.latest.burnout_score,
            ended_at=summary.latest.session.ended_at,
        )

    return SummaryResponse(
        total_sessions=summary.total_sessions,
        average_burnout=summary.average_burnout,
        burnout_score=summary.burnout_score,
        burnout_level=summary.burnout_level.value,
        baseline=summary.baseline.to_dict(),
        latest=latest,
        trend=summary.trend.to_dict(),
        sessions=[s.to_dict() for s in summary.sessions],
    )
