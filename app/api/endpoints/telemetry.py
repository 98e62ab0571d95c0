"""
FastAPI endpoints for behavioral telemetry.

Clients push raw interaction events (keydown, pointer move, tab switch).
Recording is fire-and-forget: events are queued as background tasks and
the response returns immediately with 202.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime
import logging

from ..dependencies import get_engine
from ...services.behavior_engine import BehaviorEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/telemetry", tags=["telemetry"])


# --- REQUEST/RESPONSE MODELS ---

class KeydownEvent(BaseModel):
    key: str = Field(..., description="KeyboardEvent.key of the pressed key")


class MouseMoveEvent(BaseModel):
    x: float = Field(..., description="Pointer x position")
    y: float = Field(..., description="Pointer y position")


class TelemetryEvent(BaseModel):
    """One raw event inside a batch"""
    type: Literal["keydown", "mousemove", "tabswitch"]
    key: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None


class TelemetryBatch(BaseModel):
    events: List[TelemetryEvent] = Field(..., description="Events in the order they happened")


class AcceptedResponse(BaseModel):
    accepted: int


class LiveMetricsModel(BaseModel):
    keystrokes: int
    backspaces: int
    mouse_moves: int
    mouse_jitter: int


class LiveRatesModel(BaseModel):
    duration_min: float
    typing_speed: float
    error_ratio: float
    jitter_rate: float
    tab_rate: float


class LiveResponse(BaseModel):
    """Current session counters and scores. Scores are null until a session has started."""
    tracking: bool
    session_start: Optional[int] = None
    metrics: Optional[LiveMetricsModel] = None
    tab_switch_count: int = 0
    baseline: dict = Field(..., description="Baseline the score is compared against")

    score: Optional[int] = Field(None, description="Stress score 0-100")
    level: Optional[str] = Field(None, description="LOW, ELEVATED or DANGER")
    rates: Optional[LiveRatesModel] = None
    strain_score: Optional[int] = None
    strain_level: Optional[str] = None

    timestamp: datetime = Field(default_factory=datetime.now)


# --- ENDPOINTS ---

@router.post("/keydown", response_model=AcceptedResponse, status_code=202)
async def record_keydown(
    event: KeydownEvent,
    background_tasks: BackgroundTasks,
    engine: BehaviorEngine = Depends(get_engine),
):
    background_tasks.add_task(engine.accumulator.record_keydown, event.key)
    return AcceptedResponse(accepted=1)


@router.post("/mousemove", response_model=AcceptedResponse, status_code=202)
async def record_mouse_move(
    event: MouseMoveEvent,
    background_tasks: BackgroundTasks,
    engine: BehaviorEngine = Depends(get_engine),
):
    background_tasks.add_task(engine.accumulator.record_mouse_move, event.x, event.y)
    return AcceptedResponse(accepted=1)


@router.post("/tab-switch", response_model=AcceptedResponse, status_code=202)
async def record_tab_switch(
    background_tasks: BackgroundTasks,
    engine: BehaviorEngine = Depends(get_engine),
):
    background_tasks.add_task(engine.accumulator.record_tab_switch)
    return AcceptedResponse(accepted=1)


@router.post("/events", response_model=AcceptedResponse, status_code=202)
async def record_events(
    batch: TelemetryBatch,
    background_tasks: BackgroundTasks,
    engine: BehaviorEngine = Depends(get_engine),
):
    """
    Records a batch of events in order.
    A single background task replays the batch so pointer jitter is measured
    between consecutive samples of the same batch.
    """
    events = [event.model_dump(exclude_none=True) for event in batch.events]
    background_tasks.add_task(_replay_events, engine, events)
    return AcceptedResponse(accepted=len(events))


@router.get("/live", response_model=LiveResponse)
def live_score(engine: BehaviorEngine = Depends(get_engine)):
    view = engine.live()
    snapshot = view.snapshot

    response = LiveResponse(
        tracking=snapshot.tracking,
        session_start=snapshot.session_start,
        tab_switch_count=snapshot.tab_switch_count,
        baseline=view.baseline.to_dict(),
    )
    if snapshot.metrics is not None:
        response.metrics = LiveMetricsModel(
            keystrokes=snapshot.metrics.keystrokes,
            backspaces=snapshot.metrics.backspaces,
            mouse_moves=snapshot.metrics.mouse_moves,
            mouse_jitter=snapshot.metrics.mouse_jitter,
        )
    if view.risk is not None:
        response.score = view.risk.score
        response.level = view.risk.level.value
        if view.risk.rates is not None:
            response.rates = LiveRatesModel(**vars(view.risk.rates))
    if view.strain is not None:
        response.strain_score = view.strain.score
        response.strain_level = view.strain.level.value
    return response


@router.get("/health")
async def health_check():
    """Check if telemetry processing services are available"""
    return {
        "status": "healthy",
        "services": {
            "event_accumulator": "available",
            "stress_scorer": "available"
        }
    }


def _replay_events(engine: BehaviorEngine, events: List[dict]) -> None:
    recorded = sum(1 for event in events if engine.accumulator.record_event(event))
    logger.debug(f"Replayed {len(events)} events, {recorded} recorded")
