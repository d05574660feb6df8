import logging
import random
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from .config import settings
from .errors import NoQuestionsError, NotEnoughAnswersError
from .synonyms import display_form

logger = logging.getLogger(__name__)

TRUE = "true"
FALSE = "false"


class Selection(BaseModel):
    model_config = ConfigDict(frozen=True)

    indices: List[int]
    history: List[int]
    game_length: int


class ShuffledAnswers(BaseModel):
    model_config = ConfigDict(frozen=True)

    choices: List[str]
    correct_index: int
    true_false: bool = False


def select_questions(
    corpus_size: int,
    game_length: int,
    history: Sequence[int],
    rng: Optional[random.Random] = None,
    max_history: int = settings.MAX_PREVIOUS_QUESTIONS,
) -> Selection:
    """Pick ``game_length`` distinct question indices, avoiding recent history.

    Candidates are inspected in random order. Once every index has been
    inspected without finding an unseen one, the round is completed from the
    history, oldest first.
    """
    rng = rng or random.Random()
    if corpus_size <= 0 or game_length <= 0:
        raise NoQuestionsError()
    if game_length > corpus_size:
        logger.warning(
            f"Not enough questions: game length {game_length}, corpus {corpus_size}"
        )
        game_length = corpus_size

    previous = [i for i in history if 0 <= i < corpus_size]
    if len(previous) < len(history):
        logger.warning(
            f"Dropped {len(history) - len(previous)} stale history entries for corpus {corpus_size}"
        )
    if len(previous) > max_history or len(previous) >= corpus_size:
        previous = previous[game_length:]
    seen = set(previous)

    candidates = list(range(corpus_size))
    rng.shuffle(candidates)
    selected: List[int] = []
    checked = set()
    history_cursor = 0
    while len(selected) < game_length:
        found = False
        while len(checked) < corpus_size:
            index = candidates[len(checked)]
            checked.add(index)
            if index not in selected and index not in seen:
                selected.append(index)
                found = True
                break
        if not found:
            while previous[history_cursor] in selected:
                history_cursor += 1
            selected.append(previous[history_cursor])
            history_cursor += 1

    logger.debug(f"Selected questions {selected} avoiding {previous}")
    updated = (previous + selected)[-max_history:]
    return Selection(indices=selected, history=updated, game_length=game_length)


def is_true_false(answers: Sequence[str]) -> bool:
    if not answers or len(answers) != 2:
        return False
    first = display_form(answers[0]).lower()
    second = display_form(answers[1]).lower()
    return {first, second} == {TRUE, FALSE}


def shuffle_answers(
    answers: Sequence[str],
    correct_position: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> ShuffledAnswers:
    """Place the correct answer (storage element 0) at ``correct_position``.

    The distractors fill the remaining positions in random order. True/false
    answers keep their storage order.
    """
    rng = rng or random.Random()
    if not answers or len(answers) < 2:
        logger.error(f"Not enough answers: {list(answers or [])}")
        raise NotEnoughAnswersError()

    if is_true_false(answers):
        return ShuffledAnswers(choices=list(answers), correct_index=1, true_false=True)

    if correct_position is None:
        correct_position = rng.randint(0, len(answers) - 1)
    if not 0 <= correct_position < len(answers):
        raise ValueError(f"Correct position {correct_position} out of range")

    distractors = list(answers[1:])
    rng.shuffle(distractors)
    choices = distractors[:correct_position] + [answers[0]] + distractors[correct_position:]
    logger.debug(f"Selected answers {choices}")
    return ShuffledAnswers(choices=choices, correct_index=correct_position + 1)
