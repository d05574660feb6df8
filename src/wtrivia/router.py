import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from .config import settings
from .database import UserStore
from .errors import PersistenceUnavailableError
from .game import TriviaGame, run_deferred
from .globals import game as default_game
from .globals import user_store as default_user_store
from .models import ScoreStats, Session, TurnRequest, TurnResponse

logger = logging.getLogger(__name__)

router = APIRouter()

sessions: Dict[str, Session] = {}


# --- Dependencies ---
def get_game() -> TriviaGame:
    return default_game


def get_user_store() -> UserStore:
    return default_user_store


def get_active_session(session_id: Optional[str]) -> Optional[Session]:
    if not session_id or session_id not in sessions:
        return None
    session = sessions[session_id]
    if datetime.now() - session.created_at > timedelta(
        minutes=settings.SESSION_TIMEOUT_MINUTES
    ):
        logger.info(f"Session expired: {session_id}")
        del sessions[session_id]
        return None
    return session


# --- Routes ---
@router.post("/api/turn", response_model=TurnResponse)
async def handle_turn(
    turn: TurnRequest,
    background_tasks: BackgroundTasks,
    game: TriviaGame = Depends(get_game),
):
    session = get_active_session(turn.session_id)
    result = game.handle_turn(session, turn)

    for write in result.writes:
        background_tasks.add_task(run_deferred, write)

    if turn.session_id and turn.session_id != result.session.session_id:
        sessions.pop(turn.session_id, None)
    if result.ended:
        sessions.pop(result.session.session_id, None)
        logger.info(f"Session ended: {result.session.session_id}")
    else:
        sessions[result.session.session_id] = result.session
    return result.response


@router.get("/api/users/{user_id}/stats", response_model=ScoreStats)
async def get_user_stats(user_id: str, store: UserStore = Depends(get_user_store)):
    try:
        return store.load_score_stats(user_id)
    except PersistenceUnavailableError as e:
        logger.error(f"Failed to load stats for {user_id}: {e}")
        raise HTTPException(status_code=503, detail="Score statistics unavailable")


@router.get("/api/corpus")
async def get_corpus(game: TriviaGame = Depends(get_game)):
    return {
        "questions": len(game.corpus),
        "theme": game.theme,
        "game_length": game.game_length,
    }


@router.delete("/api/sessions/{session_id}")
async def reset_session(session_id: str):
    if session_id in sessions:
        del sessions[session_id]
    return {"status": "success"}
