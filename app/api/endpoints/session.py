"""
FastAPI endpoints for the tracking session lifecycle (start / stop / reset).
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
import logging

from ..dependencies import get_engine
from ...services.behavior_engine import BehaviorEngine, InvalidTransitionError
from ...services.behavior_engine.metrics import Session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/session", tags=["session"])


class SessionStatusResponse(BaseModel):
    tracking: bool
    status: str = Field(..., description="Ready, Tracking active or Tracking stopped")
    session_start: Optional[int] = None
    history_size: int


class TransitionResponse(BaseModel):
    tracking: bool
    message: str
    session: Optional[Dict[str, Any]] = Field(
        None,
        description="Session committed to history, if any",
    )
    session_start: Optional[int] = None


# Handlers are plain `def`: the store may block on file writes and counter
# locks, so FastAPI runs them in its threadpool.

@router.get("/status", response_model=SessionStatusResponse)
def session_status(engine: BehaviorEngine = Depends(get_engine)):
    snapshot = engine.lifecycle.snapshot()
    return SessionStatusResponse(
        tracking=snapshot.tracking,
        status=engine.lifecycle.status_message(),
        session_start=snapshot.session_start,
        history_size=len(snapshot.history),
    )


@router.post("/start", response_model=TransitionResponse)
def start_session(engine: BehaviorEngine = Depends(get_engine)):
    try:
        started_at = engine.lifecycle.start()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Session start failed: {e}", exc_info=True)
        raise
    return TransitionResponse(tracking=True, message="Tracking active", session_start=started_at)


@router.post("/stop", response_model=TransitionResponse)
def stop_session(engine: BehaviorEngine = Depends(get_engine)):
    try:
        session = engine.lifecycle.stop()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Session stop failed: {e}", exc_info=True)
        raise
    return TransitionResponse(
        tracking=False,
        message="Tracking stopped & session saved",
        session=_session_payload(session),
    )


@router.post("/reset", response_model=TransitionResponse)
def reset_session(engine: BehaviorEngine = Depends(get_engine)):
    try:
        session = engine.lifecycle.reset()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Session reset failed: {e}", exc_info=True)
        raise
    return TransitionResponse(
        tracking=engine.lifecycle.is_tracking(),
        message="Session saved & reset",
        session=_session_payload(session),
    )


def _session_payload(session: Optional[Session]) -> Optional[Dict[str, Any]]:
    return session.to_dict() if session is not None else None
