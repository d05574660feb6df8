import random
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from wtrivia.corpus import CorpusManager  # noqa: E402
from wtrivia.database import UserStore, init_db  # noqa: E402
from wtrivia.game import TriviaGame  # noqa: E402
from wtrivia.themes import ThemeManager  # noqa: E402

QUESTIONS_CSV = """question,answer_1,answer_2,answer_3,answer_4,follow_up
Which city is known as the City of Light?,Paris|City of Light,London,Berlin,Madrid,A fact about Paris.
Which planet is known as the Red Planet?,Mars,Venus,Jupiter,Mercury,
What is the largest ocean on Earth?,Pacific|Pacific Ocean,Atlantic,Indian,Arctic,
Bats are mammals.,True,False,,,
"""

THEME_CSV = """prompt_type,prompt
GREETING_PROMPTS_1,"Welcome to %s!"
GREETING_PROMPTS_2,"Welcome back to %s!"
INTRODUCTION_PROMPTS,"Intro."
FIRST_ROUND_PROMPTS,"First question."
DEEPLINK_PROMPT,"Deep link welcome."
RE_PROMPT,"Let's go."
QUIT_PROMPTS,"Goodbye."
END_PROMPTS,"You scored %s out of %s."
PLAY_AGAIN_QUESTION_PROMPTS,"Play again?"
FALLBACK_PROMPT_1,"Do you want to stop?"
FALLBACK_PROMPT_2,"Let's stop here."
RAPID_REPROMPTS,"What was that?"
REPEAT_PROMPTS,"Again."
SKIP_PROMPTS,"Skipping."
HINT_PROMPTS,"A hint."
HELP_PROMPTS,"There are %s questions. Continue?"
DISAGREE_PROMPTS,"Sorry."
FEELING_LUCKY_PROMPTS,"Lucky pick."
YOUR_SCORE_PROMPTS,"Score %s."
RIGHT_ANSWER_PROMPTS_1,"Right!"
WRONG_ANSWER_PROMPTS_1,"Wrong."
WRONG_ANSWER_PROMPTS_2,"It was %s."
WRONG_ANSWER_FOR_QUESTION_PROMPTS,"Not for this question."
CORRECT_ANSWER_ONLY_PROMPTS,"The answer is %s."
TRUE_FALSE_PROMPTS,"True or false: %s"
ROUND_PROMPTS,"Question %s."
QUESTION_PROMPTS,"Next."
NEXT_QUESTION_PROMPTS,"Next one."
FINAL_ROUND_PROMPTS,"Final question."
GAME_OVER_PROMPTS_1,"Round over."
GAME_OVER_PROMPTS_2,"Scoring."
ALL_CORRECT_PROMPTS,"All %s right."
NONE_CORRECT_PROMPTS,"None right, %s."
SOME_CORRECT_PROMPTS,"Some right, %s."
NO_INPUT_PROMPTS_1,"No input one."
NO_INPUT_PROMPTS_2,"No input two."
NO_INPUT_PROMPTS_3,"No input three."
"""


@pytest.fixture
def corpus(tmp_path: Path) -> CorpusManager:
    directory = tmp_path / "corpus"
    directory.mkdir()
    (directory / "questions.csv").write_text(QUESTIONS_CSV, encoding="utf-8")
    manager = CorpusManager(str(directory))
    manager.load_all()
    return manager


@pytest.fixture
def themes(tmp_path: Path) -> ThemeManager:
    directory = tmp_path / "themes"
    directory.mkdir()
    (directory / "test.csv").write_text(THEME_CSV, encoding="utf-8")
    manager = ThemeManager(str(directory), rng=random.Random(7))
    manager.load_all()
    return manager


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    path = str(tmp_path / "db" / "test.db")
    init_db(path)
    return path


@pytest.fixture
def store(db_path: str) -> UserStore:
    return UserStore(db_path)


@pytest.fixture
def game(corpus: CorpusManager, themes: ThemeManager, store: UserStore) -> TriviaGame:
    return TriviaGame(corpus, themes, store, theme="test", game_length=3, rng=random.Random(42))
