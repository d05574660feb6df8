import glob
import logging
import os
import random
from enum import Enum
from typing import Dict, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)


class PromptType(str, Enum):
    GREETING_PROMPTS_1 = "GREETING_PROMPTS_1"
    GREETING_PROMPTS_2 = "GREETING_PROMPTS_2"
    INTRODUCTION_PROMPTS = "INTRODUCTION_PROMPTS"
    FIRST_ROUND_PROMPTS = "FIRST_ROUND_PROMPTS"
    DEEPLINK_PROMPT = "DEEPLINK_PROMPT"
    RE_PROMPT = "RE_PROMPT"
    QUIT_PROMPTS = "QUIT_PROMPTS"
    END_PROMPTS = "END_PROMPTS"
    PLAY_AGAIN_QUESTION_PROMPTS = "PLAY_AGAIN_QUESTION_PROMPTS"
    FALLBACK_PROMPT_1 = "FALLBACK_PROMPT_1"
    FALLBACK_PROMPT_2 = "FALLBACK_PROMPT_2"
    RAPID_REPROMPTS = "RAPID_REPROMPTS"
    REPEAT_PROMPTS = "REPEAT_PROMPTS"
    SKIP_PROMPTS = "SKIP_PROMPTS"
    HINT_PROMPTS = "HINT_PROMPTS"
    HELP_PROMPTS = "HELP_PROMPTS"
    DISAGREE_PROMPTS = "DISAGREE_PROMPTS"
    FEELING_LUCKY_PROMPTS = "FEELING_LUCKY_PROMPTS"
    YOUR_SCORE_PROMPTS = "YOUR_SCORE_PROMPTS"
    RIGHT_ANSWER_PROMPTS_1 = "RIGHT_ANSWER_PROMPTS_1"
    WRONG_ANSWER_PROMPTS_1 = "WRONG_ANSWER_PROMPTS_1"
    WRONG_ANSWER_PROMPTS_2 = "WRONG_ANSWER_PROMPTS_2"
    WRONG_ANSWER_FOR_QUESTION_PROMPTS = "WRONG_ANSWER_FOR_QUESTION_PROMPTS"
    CORRECT_ANSWER_ONLY_PROMPTS = "CORRECT_ANSWER_ONLY_PROMPTS"
    TRUE_FALSE_PROMPTS = "TRUE_FALSE_PROMPTS"
    ROUND_PROMPTS = "ROUND_PROMPTS"
    QUESTION_PROMPTS = "QUESTION_PROMPTS"
    NEXT_QUESTION_PROMPTS = "NEXT_QUESTION_PROMPTS"
    FINAL_ROUND_PROMPTS = "FINAL_ROUND_PROMPTS"
    GAME_OVER_PROMPTS_1 = "GAME_OVER_PROMPTS_1"
    GAME_OVER_PROMPTS_2 = "GAME_OVER_PROMPTS_2"
    ALL_CORRECT_PROMPTS = "ALL_CORRECT_PROMPTS"
    NONE_CORRECT_PROMPTS = "NONE_CORRECT_PROMPTS"
    SOME_CORRECT_PROMPTS = "SOME_CORRECT_PROMPTS"
    NO_INPUT_PROMPTS_1 = "NO_INPUT_PROMPTS_1"
    NO_INPUT_PROMPTS_2 = "NO_INPUT_PROMPTS_2"
    NO_INPUT_PROMPTS_3 = "NO_INPUT_PROMPTS_3"


DUMMY_PROMPTS: Dict[str, List[str]] = {
    PromptType.GREETING_PROMPTS_1: ["Welcome to %s!"],
    PromptType.GREETING_PROMPTS_2: ["Welcome back to %s!"],
    PromptType.INTRODUCTION_PROMPTS: ["I'll ask you a few questions."],
    PromptType.FIRST_ROUND_PROMPTS: ["Here is the first question."],
    PromptType.DEEPLINK_PROMPT: ["I can't help with that, but let's play trivia."],
    PromptType.RE_PROMPT: ["OK, let's go."],
    PromptType.QUIT_PROMPTS: ["Thanks for playing."],
    PromptType.END_PROMPTS: ["You scored %s out of %s. Goodbye."],
    PromptType.PLAY_AGAIN_QUESTION_PROMPTS: ["Would you like to play again?"],
    PromptType.FALLBACK_PROMPT_1: ["Sorry, I didn't get that. Do you want to stop?"],
    PromptType.FALLBACK_PROMPT_2: ["Sorry, I still didn't get that. Let's stop here."],
    PromptType.RAPID_REPROMPTS: ["What was that?"],
    PromptType.REPEAT_PROMPTS: ["Here is the question again."],
    PromptType.SKIP_PROMPTS: ["Let's skip that one."],
    PromptType.HINT_PROMPTS: ["Just pick the answer you think is most likely."],
    PromptType.HELP_PROMPTS: ["There are %s questions in a round. Do you want to continue?"],
    PromptType.DISAGREE_PROMPTS: ["Sorry about that. Let's try again."],
    PromptType.FEELING_LUCKY_PROMPTS: ["Let me pick one for you."],
    PromptType.YOUR_SCORE_PROMPTS: ["Your score is %s."],
    PromptType.RIGHT_ANSWER_PROMPTS_1: ["That's right!"],
    PromptType.WRONG_ANSWER_PROMPTS_1: ["Sorry, that's wrong."],
    PromptType.WRONG_ANSWER_PROMPTS_2: ["The answer is %s."],
    PromptType.WRONG_ANSWER_FOR_QUESTION_PROMPTS: ["That's not an answer to this question."],
    PromptType.CORRECT_ANSWER_ONLY_PROMPTS: ["The answer is %s."],
    PromptType.TRUE_FALSE_PROMPTS: ["True or false: %s"],
    PromptType.ROUND_PROMPTS: ["Question %s."],
    PromptType.QUESTION_PROMPTS: ["Next question."],
    PromptType.NEXT_QUESTION_PROMPTS: ["On to the next one."],
    PromptType.FINAL_ROUND_PROMPTS: ["Last question."],
    PromptType.GAME_OVER_PROMPTS_1: ["That's the end of the round."],
    PromptType.GAME_OVER_PROMPTS_2: ["Let's see how you did."],
    PromptType.ALL_CORRECT_PROMPTS: ["You got all %s right!"],
    PromptType.NONE_CORRECT_PROMPTS: ["You got %s right."],
    PromptType.SOME_CORRECT_PROMPTS: ["You got %s right."],
    PromptType.NO_INPUT_PROMPTS_1: ["Sorry, what was your answer?"],
    PromptType.NO_INPUT_PROMPTS_2: ["Which answer do you choose?"],
    PromptType.NO_INPUT_PROMPTS_3: ["We can stop here. See you soon."],
}


class ThemeManager:
    """Loads prompt themes and picks prompts without repeating the last one.

    Each CSV file in the directory is one theme named after the file, with
    ``prompt_type`` and ``prompt`` columns. Prompts are ``%``-style templates.
    """

    def __init__(self, directory: str, rng: Optional[random.Random] = None):
        self.directory = directory
        self.themes: Dict[str, Dict[str, List[str]]] = {}
        self.rng = rng or random.Random()

    def load_all(self):
        self.themes = {}
        if not os.path.exists(self.directory):
            os.makedirs(self.directory)
            logger.warning(f"Created directory {self.directory}. Please add CSV files.")

        for file_path in glob.glob(os.path.join(self.directory, "*.csv")):
            theme = os.path.splitext(os.path.basename(file_path))[0]
            try:
                df = pd.read_csv(file_path, encoding="utf-8", dtype=str, keep_default_na=False)
            except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                logger.error(f"Failed to load {file_path}: {e}")
                continue
            if "prompt_type" not in df.columns or "prompt" not in df.columns:
                logger.error(f"Skipping {theme}: Missing columns.")
                continue
            self.themes[theme] = {
                prompt_type: [p for p in group["prompt"].tolist() if p]
                for prompt_type, group in df.groupby("prompt_type")
            }
            logger.info(f"Loaded {len(df)} prompts for theme {theme}")

        if not self.themes:
            logger.warning("No themes found. Loading dummy prompts.")
            self.themes["default_dummy"] = {
                prompt_type.value: list(prompts)
                for prompt_type, prompts in DUMMY_PROMPTS.items()
            }

    def resolve_theme(self, theme: str) -> str:
        if theme in self.themes:
            return theme
        fallback = sorted(self.themes)[0] if self.themes else theme
        logger.debug(f"Unknown theme {theme}, using {fallback}")
        return fallback

    def get_prompts(self, theme: str, prompt_type: PromptType) -> List[str]:
        return self.themes.get(theme, {}).get(prompt_type.value, [])

    def get_random_prompt(
        self, theme: str, prompt_type: PromptType, last_prompt: Optional[str] = None
    ) -> str:
        prompts = self.get_prompts(theme, prompt_type)
        if not prompts:
            logger.error(f"Missing prompts: {prompt_type.value} for theme {theme}")
            return f"Missing prompts: {prompt_type.value}"
        candidates = [p for p in prompts if p != last_prompt] or prompts
        return self.rng.choice(candidates)
