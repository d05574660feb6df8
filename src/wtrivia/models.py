from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .config import settings


class GameState(str, Enum):
    AWAITING_FIRST_QUESTION = "awaiting_first_question"
    QUESTION_ASKED = "question_asked"
    ROUND_ENDED = "round_ended"
    ENDED = "ended"


class Session(BaseModel):
    session_id: str
    user_id: str
    state: GameState = GameState.AWAITING_FIRST_QUESTION
    question_indices: List[int] = Field(default_factory=list)
    session_questions: List[str] = Field(default_factory=list)
    session_answers: List[List[str]] = Field(default_factory=list)
    session_follow_ups: List[str] = Field(default_factory=list)
    current_question_index: int = Field(0, ge=0)
    question_prompt: Optional[str] = None
    selected_answers: List[str] = Field(default_factory=list)
    correct_answer_index: int = Field(1, ge=1)
    score: int = Field(0, ge=0)
    game_length: int = settings.QUESTIONS_PER_GAME
    fallback_count: int = Field(0, ge=0)
    correct: bool = False
    last_served_prompt: Optional[str] = None
    last_raw_input: Optional[str] = None
    previous_question_indices: List[int] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index == self.game_length - 1


class ScoreStats(BaseModel):
    highest: int = 0
    lowest: int = 0
    average: float = 0.0
    total: int = 0
    count: int = 0

    def record(self, score: int) -> "ScoreStats":
        """Return the statistics updated with one finished round."""
        if self.count == 0:
            return ScoreStats(highest=score, lowest=score, average=score, total=score, count=1)
        total = self.total + score
        count = self.count + 1
        return ScoreStats(
            highest=max(self.highest, score),
            lowest=min(self.lowest, score),
            average=total / count,
            total=total,
            count=count,
        )


class TurnRequest(BaseModel):
    """One user turn as delivered by the conversation platform."""

    user_id: str
    session_id: Optional[str] = None
    intent: str
    raw_input: str = ""
    arguments: Dict[str, Any] = Field(default_factory=dict)
    contexts: List[str] = Field(default_factory=list)
    has_screen: bool = False
    selected_option: Optional[str] = None

    def argument(self, name: str) -> Optional[Any]:
        value = self.arguments.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return value


class TurnResponse(BaseModel):
    session_id: Optional[str] = None
    speech: str
    expect_user_response: bool = True
    bubbles: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    list_items: List[str] = Field(default_factory=list)
    contexts: List[str] = Field(default_factory=list)
    no_input_prompts: List[str] = Field(default_factory=list)
