"""Turn processing for the trivia game.

``TriviaGame.handle_turn`` is the single entry point: it maps the platform's
intent name to a handler, threads the ``Session`` through it and returns the
response together with the persistence writes to run once the response has
been sent.
"""

import logging
import random
import uuid
from enum import Enum
from functools import partial
from typing import Any, Callable, List, Optional

from pydantic import BaseModel, Field

from .config import settings
from .corpus import CorpusManager
from .database import UserStore
from .errors import MissingSessionStateError, PersistenceUnavailableError, TriviaError
from .matcher import (
    compare_strings,
    find_display,
    match_entity,
    ordinal_choice,
    resolve_answer,
)
from .models import GameState, Session, TurnRequest, TurnResponse
from .responses import FALSE, NO, TRUE, YES, Ssml, choice_labels, present_choices, say_choices
from .selector import is_true_false, select_questions, shuffle_answers
from .synonyms import SynonymGroup, build_synonym_groups, display_form
from .themes import PromptType, ThemeManager

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Sorry, something went wrong."


class Intent(str, Enum):
    MAIN = "game.start"
    DEEPLINK = "deeplink.unknown"
    VALUE = "game.choice.value"
    ORDINAL = "game.choice.ordinal"
    LAST = "game.choice.last"
    MIDDLE = "game.choice.middle"
    TRUE = "game.choice.true"
    FALSE = "game.choice.false"
    ITEM = "game.choice.item"
    ANSWER = "game.choice.answer"
    UNKNOWN = "game.unknown"
    DONT_KNOW = "game.answers.dont_know"
    FEELING_LUCKY = "game.feeling_lucky"
    REPEAT = "game.question.repeat"
    ANSWERS = "game.answers"
    SCORE = "game.score"
    HINT = "game.hint"
    DISAGREE = "game.answers.wrong"
    MISTAKEN = "game.mistaken"
    HELP = "game.help"
    HELP_YES = "game.help.yes"
    HELP_NO = "game.help.no"
    QUIT = "game.quit"
    DONE_YES = "game.quit.yes"
    DONE_NO = "game.quit.no"
    NEW = "game.restart"
    PLAY_AGAIN_YES = "game.restart.yes"
    PLAY_AGAIN_NO = "game.restart.no"


class Context(str, Enum):
    PLAY_AGAIN = "restart"
    DONE = "quit"
    HELP = "help"
    TRUE_FALSE = "true_false"


START_INTENTS = frozenset({Intent.MAIN, Intent.DEEPLINK})
ANSWER_INTENTS = frozenset(
    {
        Intent.VALUE,
        Intent.ORDINAL,
        Intent.LAST,
        Intent.MIDDLE,
        Intent.TRUE,
        Intent.FALSE,
        Intent.ITEM,
        Intent.ANSWER,
        Intent.UNKNOWN,
        Intent.DONT_KNOW,
    }
)
FALLBACK_RESET_INTENTS = frozenset(
    {
        Intent.REPEAT,
        Intent.ANSWERS,
        Intent.SCORE,
        Intent.HINT,
        Intent.DISAGREE,
        Intent.MISTAKEN,
        Intent.HELP,
        Intent.HELP_YES,
        Intent.DONE_NO,
    }
)
CHOICE_ARGUMENTS = ("number", "any", "ordinal")


def parse_intent(name: str) -> Intent:
    try:
        return Intent(name)
    except ValueError:
        logger.warning(f"Unhandled intent {name}, treating as unknown input")
        return Intent.UNKNOWN


def run_deferred(write: Callable[[], Any]):
    """Run one persistence write; failures are logged and never reach the user."""
    try:
        write()
    except PersistenceUnavailableError as e:
        logger.error(f"Persistence write failed: {e}")


class TurnResult(BaseModel):
    session: Session
    response: TurnResponse
    writes: List[Callable[[], Any]] = Field(default_factory=list)

    @property
    def ended(self) -> bool:
        return self.session.state is GameState.ENDED


class Turn:
    """Response under construction for one request."""

    def __init__(self, game: "TriviaGame", session: Session, request: TurnRequest):
        self.game = game
        self.session = session
        self.request = request
        self.intro = Ssml()
        self.question: Optional[Ssml] = None
        self.suggestions: List[str] = []
        self.list_items: List[str] = []
        self.contexts: List[str] = []
        self.writes: List[Callable[[], Any]] = []
        self.expect_user_response = True
        self.no_input_prompts: List[str] = []
        self._prompt_served = False

    def prompt(self, prompt_type: PromptType, *args) -> str:
        template = self.game.themes.get_random_prompt(
            self.game.theme, prompt_type, self.session.last_served_prompt
        )
        if not self._prompt_served:
            self._prompt_served = True
            self.session.last_served_prompt = template
        if not args or "%" not in template:
            return template
        try:
            return template % args
        except (TypeError, ValueError) as e:
            logger.error(f"Bad {prompt_type.value} template {template!r}: {e}")
            return template

    def say(self, prompt_type: PromptType, *args) -> "Turn":
        self.intro.say(self.prompt(prompt_type, *args))
        return self

    def defer(self, write: Callable[..., Any], *args):
        self.writes.append(partial(write, *args))

    def set_context(self, context: Context):
        if context.value not in self.contexts:
            self.contexts.append(context.value)

    def yes_no(self):
        if self.request.has_screen:
            self.suggestions = [YES, NO]

    def ask(self):
        self.expect_user_response = True
        self.no_input_prompts = [
            self.game.themes.get_random_prompt(self.game.theme, prompt_type)
            for prompt_type in (
                PromptType.NO_INPUT_PROMPTS_1,
                PromptType.NO_INPUT_PROMPTS_2,
                PromptType.NO_INPUT_PROMPTS_3,
            )
        ]

    def tell(self):
        self.expect_user_response = False
        self.suggestions, self.list_items, self.contexts = [], [], []
        self.session.state = GameState.ENDED

    def result(self) -> TurnResult:
        speech = Ssml()
        speech.tags = self.intro.tags + (self.question.tags if self.question else [])
        bubbles = []
        if self.request.has_screen and self.question is not None:
            bubbles = [str(part) for part in (self.intro, self.question) if part]
        response = TurnResponse(
            session_id=self.session.session_id,
            speech=str(speech),
            expect_user_response=self.expect_user_response,
            bubbles=bubbles,
            suggestions=self.suggestions,
            list_items=self.list_items,
            contexts=self.contexts,
            no_input_prompts=self.no_input_prompts,
        )
        return TurnResult(session=self.session, response=response, writes=self.writes)


class TriviaGame:
    def __init__(
        self,
        corpus: CorpusManager,
        themes: ThemeManager,
        store: UserStore,
        theme: str = settings.THEME,
        game_length: int = settings.QUESTIONS_PER_GAME,
        rng: Optional[random.Random] = None,
    ):
        self.corpus = corpus
        self.themes = themes
        self.store = store
        self._theme = theme
        self.game_length = game_length
        self.rng = rng or random.Random()
        self._handlers = {
            Intent.MAIN: self._main,
            Intent.DEEPLINK: self._deeplink,
            Intent.VALUE: self._value,
            Intent.ORDINAL: self._value,
            Intent.LAST: partial(self._ordinal, "last"),
            Intent.MIDDLE: partial(self._ordinal, "middle"),
            Intent.TRUE: partial(self._boolean, TRUE),
            Intent.FALSE: partial(self._boolean, FALSE),
            Intent.ITEM: self._item,
            Intent.ANSWER: self._answer_entity,
            Intent.UNKNOWN: self._unknown,
            Intent.DONT_KNOW: self._dont_know,
            Intent.FEELING_LUCKY: self._feeling_lucky,
            Intent.REPEAT: partial(self._reprompt, PromptType.REPEAT_PROMPTS),
            Intent.ANSWERS: partial(self._reprompt, PromptType.REPEAT_PROMPTS),
            Intent.HINT: partial(self._reprompt, PromptType.HINT_PROMPTS),
            Intent.DISAGREE: partial(self._reprompt, PromptType.DISAGREE_PROMPTS),
            Intent.MISTAKEN: partial(self._reprompt, PromptType.RE_PROMPT),
            Intent.HELP_YES: partial(self._reprompt, PromptType.REPEAT_PROMPTS),
            Intent.SCORE: self._score_request,
            Intent.HELP: self._help,
            Intent.HELP_NO: self._goodbye,
            Intent.QUIT: self._quit,
            Intent.DONE_YES: self._goodbye,
            Intent.DONE_NO: self._done_no,
            Intent.NEW: self._play_again,
            Intent.PLAY_AGAIN_YES: self._play_again,
            Intent.PLAY_AGAIN_NO: self._goodbye,
        }

    @property
    def theme(self) -> str:
        return self.themes.resolve_theme(self._theme)

    def new_session(self, user_id: str) -> Session:
        return Session(
            session_id=str(uuid.uuid4()), user_id=user_id, game_length=self.game_length
        )

    def handle_turn(self, session: Optional[Session], request: TurnRequest) -> TurnResult:
        intent = parse_intent(request.intent)
        logger.info(
            f"Handling {intent.value} for {request.user_id}: '{request.raw_input}'"
        )
        if intent in START_INTENTS:
            session = self.new_session(request.user_id)
        elif session is None:
            logger.error(f"No session for {request.user_id} on {intent.value}")
            return self._failure(self.new_session(request.user_id), request)

        turn = Turn(self, session, request)
        if intent in FALLBACK_RESET_INTENTS:
            session.fallback_count = 0
        try:
            if session.state is GameState.ROUND_ENDED and intent in ANSWER_INTENTS:
                self._replay_pending(turn)
            else:
                self._handlers[intent](turn)
        except MissingSessionStateError as e:
            logger.error(f"{e} on {intent.value} for {request.user_id}")
            return self._failure(session, request)
        except TriviaError as e:
            logger.error(f"Round failed for {request.user_id}: {e}")
            failed = Turn(self, session, request)
            failed.writes = turn.writes
            failed.intro.say(str(e))
            failed.tell()
            return failed.result()
        return turn.result()

    def _failure(self, session: Session, request: TurnRequest) -> TurnResult:
        turn = Turn(self, session, request)
        turn.intro.say(GENERIC_FAILURE)
        turn.tell()
        return turn.result()

    def _read(self, loader: Callable[[], Any], default: Any) -> Any:
        try:
            return loader()
        except PersistenceUnavailableError as e:
            logger.warning(f"Persistence read failed, using defaults: {e}")
            return default

    # Round set-up

    def _start_round(self, turn: Turn):
        session = turn.session
        selection = select_questions(
            len(self.corpus),
            self.game_length,
            session.previous_question_indices,
            rng=self.rng,
        )
        session.previous_question_indices = selection.history
        turn.defer(self.store.save_history, session.user_id, list(selection.history))

        indices = selection.indices
        follow_ups = self.corpus.follow_ups
        session.game_length = selection.game_length
        session.question_indices = indices
        session.session_questions = [self.corpus.questions[i] for i in indices]
        session.session_answers = [list(self.corpus.answer_sets[i]) for i in indices]
        session.session_follow_ups = [
            follow_ups[i] if i < len(follow_ups) else "" for i in indices
        ]
        session.current_question_index = 0
        session.score = 0
        session.fallback_count = 0
        session.correct = False
        session.last_raw_input = None
        self._prepare_question(session)

    def _prepare_question(self, session: Session):
        index = session.current_question_index
        if index >= len(session.session_answers):
            raise MissingSessionStateError("session_answers")
        shuffled = shuffle_answers(session.session_answers[index], rng=self.rng)
        session.question_prompt = session.session_questions[index]
        session.selected_answers = shuffled.choices
        session.correct_answer_index = shuffled.correct_index

    def _groups(self, session: Session) -> List[SynonymGroup]:
        if not session.selected_answers:
            raise MissingSessionStateError("selected_answers")
        return build_synonym_groups(session.selected_answers)

    def _correct_display(self, session: Session) -> str:
        if not session.selected_answers:
            raise MissingSessionStateError("selected_answers")
        return display_form(session.selected_answers[session.correct_answer_index - 1])

    # Asking

    def _ask_question(self, turn: Turn):
        session = turn.session
        question, answers = session.question_prompt, session.selected_answers
        if not question or not answers:
            raise MissingSessionStateError("selected_answers")

        labels = choice_labels(answers)
        true_false = is_true_false(answers)
        has_screen = turn.request.has_screen
        turn.question = Ssml()
        if true_false:
            turn.set_context(Context.TRUE_FALSE)
            turn.question.say(turn.prompt(PromptType.TRUE_FALSE_PROMPTS, question))
        else:
            turn.question.say(question)
            if not has_screen:
                say_choices(turn.question, labels)
        turn.question.pause()

        presentation = present_choices(labels, true_false, has_screen)
        turn.suggestions = presentation.suggestions
        turn.list_items = presentation.list_items
        session.state = GameState.QUESTION_ASKED
        turn.ask()

    def _reask(self, turn: Turn):
        if turn.session.state is GameState.ROUND_ENDED:
            self._offer_replay(turn)
        else:
            self._ask_question(turn)

    def _offer_replay(self, turn: Turn):
        turn.say(PromptType.PLAY_AGAIN_QUESTION_PROMPTS)
        turn.set_context(Context.PLAY_AGAIN)
        turn.yes_no()
        turn.ask()

    def _offer_quit(self, turn: Turn):
        turn.set_context(Context.DONE)
        turn.say(PromptType.FALLBACK_PROMPT_1)
        turn.yes_no()
        turn.ask()

    # Resolution

    def _submit(self, turn: Turn, choice: Any = None):
        groups = self._groups(turn.session)
        match = resolve_answer(turn.request.raw_input, groups, choice)
        logger.debug(f"Resolved '{turn.request.raw_input}' ({choice}) as {match}")
        if match.resolved:
            self._resolve(turn, match.number)
        else:
            self._unresolved(turn)

    def _resolve(self, turn: Turn, number: int):
        session = turn.session
        correct_display = self._correct_display(session)
        session.fallback_count = 0
        if number == session.correct_answer_index:
            session.score += 1
            session.correct = True
            turn.say(PromptType.RIGHT_ANSWER_PROMPTS_1)
        else:
            session.correct = False
            turn.intro.say(
                f"{turn.prompt(PromptType.WRONG_ANSWER_PROMPTS_1)} "
                f"{turn.prompt(PromptType.WRONG_ANSWER_PROMPTS_2, correct_display)}"
            )
        index = session.current_question_index
        if index < len(session.session_follow_ups):
            turn.intro.say(session.session_follow_ups[index])
        self._next_question(turn)

    def _unresolved(self, turn: Turn):
        session = turn.session
        if self.corpus.lookup_dictionary(turn.request.raw_input):
            logger.info(f"'{turn.request.raw_input}' is an answer to another question")
            session.fallback_count = 0
            session.correct = False
            turn.intro.say(
                f"{turn.prompt(PromptType.WRONG_ANSWER_FOR_QUESTION_PROMPTS)} "
                f"{turn.prompt(PromptType.CORRECT_ANSWER_ONLY_PROMPTS, self._correct_display(session))}"
            )
            self._next_question(turn)
            return

        session.fallback_count += 1
        logger.info(f"Fallback {session.fallback_count} for {session.user_id}")
        if session.fallback_count == 1:
            turn.say(PromptType.RAPID_REPROMPTS)
            turn.ask()
        elif session.fallback_count == 2:
            self._offer_quit(turn)
        else:
            turn.say(PromptType.FALLBACK_PROMPT_2)
            turn.tell()

    def _next_question(self, turn: Turn):
        session = turn.session
        if session.is_last_question:
            self._end_round(turn)
            return

        session.current_question_index += 1
        number = session.current_question_index
        if session.is_last_question:
            turn.say(PromptType.FINAL_ROUND_PROMPTS)
        elif number % 2 == 1:
            turn.say(PromptType.ROUND_PROMPTS, number + 1)
        elif session.correct:
            turn.say(PromptType.NEXT_QUESTION_PROMPTS)
        else:
            turn.say(PromptType.QUESTION_PROMPTS)
        turn.intro.pause()
        self._prepare_question(session)
        session.fallback_count = 0
        self._ask_question(turn)

    def _end_round(self, turn: Turn):
        session = turn.session
        turn.say(PromptType.GAME_OVER_PROMPTS_1)
        turn.say(PromptType.GAME_OVER_PROMPTS_2)
        turn.intro.pause()
        if session.score == session.game_length:
            turn.say(PromptType.ALL_CORRECT_PROMPTS, session.score)
        elif session.score == 0:
            turn.say(PromptType.NONE_CORRECT_PROMPTS, session.score)
        else:
            turn.say(PromptType.SOME_CORRECT_PROMPTS, session.score)
        session.state = GameState.ROUND_ENDED
        session.fallback_count = 0
        turn.defer(self.store.record_score, session.user_id, session.score)
        logger.info(
            f"Round ended for {session.user_id}: {session.score}/{session.game_length}"
        )
        self._offer_replay(turn)

    def _replay_pending(self, turn: Turn):
        """An answer arrived after the round ended."""
        session = turn.session
        if session.fallback_count > 0:
            self._goodbye(turn)
            return
        session.fallback_count += 1
        raw_input = turn.request.raw_input
        if raw_input and raw_input == session.last_raw_input:
            self._offer_quit(turn)
        else:
            turn.say(PromptType.RAPID_REPROMPTS)
            self._offer_replay(turn)

    # Handlers

    def _main(self, turn: Turn, welcome: Optional[str] = None):
        session = turn.session
        user_id = session.user_id
        visits = self._read(partial(self.store.load_visits, user_id), 0)
        session.previous_question_indices = self._read(
            partial(self.store.load_history, user_id), []
        )
        turn.defer(self.store.save_visits, user_id, visits + 1)

        self._start_round(turn)
        if welcome:
            turn.intro.say(welcome)
        elif visits == 0:
            turn.say(PromptType.GREETING_PROMPTS_1, settings.GAME_TITLE)
        else:
            turn.say(PromptType.GREETING_PROMPTS_2, settings.GAME_TITLE)
        turn.say(PromptType.INTRODUCTION_PROMPTS)
        turn.say(PromptType.FIRST_ROUND_PROMPTS)
        turn.intro.pause()
        self._ask_question(turn)

    def _deeplink(self, turn: Turn):
        if turn.request.argument("raw_text"):
            self._main(turn, turn.prompt(PromptType.DEEPLINK_PROMPT))
        else:
            self._main(turn)

    def _value(self, turn: Turn):
        choice = None
        for name in CHOICE_ARGUMENTS:
            choice = turn.request.argument(name)
            if choice is not None:
                break
        self._submit(turn, choice)

    def _ordinal(self, ordinal: str, turn: Turn):
        count = len(turn.session.selected_answers)
        self._submit(turn, ordinal_choice(ordinal, count) if count else None)

    def _boolean(self, value: str, turn: Turn):
        number = find_display(value, self._groups(turn.session))
        self._submit(turn, number or 0)

    def _item(self, turn: Turn):
        option = turn.request.selected_option or turn.request.raw_input
        number = find_display(option, self._groups(turn.session))
        logger.debug(f"User selected '{option}' from list: {number}")
        self._submit(turn, number or 0)

    def _answer_entity(self, turn: Turn):
        session = turn.session
        if Context.DONE.value in turn.request.contexts:
            self._goodbye(turn)
            return
        session.last_raw_input = turn.request.raw_input

        choice = str(turn.request.argument("answer") or "").strip()
        groups = self._groups(session)
        if compare_strings(turn.request.raw_input, self._correct_display(session)):
            number = session.correct_answer_index
        else:
            number = match_entity(choice, groups)
        if number:
            self._resolve(turn, number)
        else:
            self._unresolved(turn)

    def _unknown(self, turn: Turn):
        self._submit(turn)

    def _dont_know(self, turn: Turn):
        session = turn.session
        session.fallback_count = 0
        session.correct = False
        turn.intro.say(
            f"{turn.prompt(PromptType.SKIP_PROMPTS)} "
            f"{turn.prompt(PromptType.CORRECT_ANSWER_ONLY_PROMPTS, self._correct_display(session))}"
        )
        self._next_question(turn)

    def _feeling_lucky(self, turn: Turn):
        session = turn.session
        contexts = turn.request.contexts
        if session.state is GameState.ROUND_ENDED or Context.PLAY_AGAIN.value in contexts:
            self._play_again(turn)
            return
        if Context.DONE.value in contexts:
            self._done_no(turn)
            return
        if not session.selected_answers:
            raise MissingSessionStateError("selected_answers")
        number = self.rng.randint(1, len(session.selected_answers))
        turn.say(PromptType.FEELING_LUCKY_PROMPTS)
        turn.intro.pause()
        turn.intro.say(display_form(session.selected_answers[number - 1]))
        turn.intro.pause()
        self._submit(turn, number)

    def _reprompt(self, prompt_type: PromptType, turn: Turn):
        turn.say(prompt_type)
        self._reask(turn)

    def _score_request(self, turn: Turn):
        turn.say(PromptType.YOUR_SCORE_PROMPTS, turn.session.score)
        self._reask(turn)

    def _help(self, turn: Turn):
        turn.set_context(Context.HELP)
        turn.say(PromptType.HELP_PROMPTS, turn.session.game_length)
        turn.yes_no()
        turn.ask()

    def _quit(self, turn: Turn):
        session = turn.session
        turn.say(PromptType.END_PROMPTS, session.score, session.game_length)
        turn.tell()

    def _goodbye(self, turn: Turn):
        turn.say(PromptType.QUIT_PROMPTS)
        turn.tell()

    def _done_no(self, turn: Turn):
        turn.session.fallback_count = 0
        if turn.session.state is GameState.ROUND_ENDED:
            self._play_again(turn)
            return
        turn.say(PromptType.RE_PROMPT)
        self._ask_question(turn)

    def _play_again(self, turn: Turn):
        self._start_round(turn)
        turn.say(PromptType.RE_PROMPT)
        turn.intro.pause()
        self._ask_question(turn)
