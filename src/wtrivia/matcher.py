import logging
import re
from enum import Enum
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from rapidfuzz.distance import Levenshtein

from .synonyms import SynonymGroup, build_forms

logger = logging.getLogger(__name__)

PUNCTUATION = re.compile(r"[.,/#!$%^&*;:{}=\-_`~()]")
MIN_FUZZY_LENGTH = 3
MAX_FUZZY_DISTANCE = 1


class MatchKind(str, Enum):
    CHOICE = "choice"
    EXACT = "exact"
    FUZZY = "fuzzy"
    PARTIAL = "partial"
    UNRESOLVED = "unresolved"


class Match(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: MatchKind
    number: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.kind is not MatchKind.UNRESOLVED


UNRESOLVED = Match(kind=MatchKind.UNRESOLVED)


def compare_strings(first: Optional[str], second: Optional[str]) -> bool:
    if not first or not second:
        return False
    return first.strip().lower() == second.strip().lower()


def normalize(value: str) -> str:
    return PUNCTUATION.sub("", value.lower()).replace(" ", "")


def fuzzy_match(first: str, second: str) -> bool:
    first = normalize(first)
    second = normalize(second)
    if len(first) <= MIN_FUZZY_LENGTH or len(second) <= MIN_FUZZY_LENGTH:
        return False
    return Levenshtein.distance(first, second) <= MAX_FUZZY_DISTANCE


def parse_number(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def is_valid_answer(value: Any, count: int) -> bool:
    number = parse_number(value)
    return number is not None and 1 <= number <= count


def ordinal_choice(ordinal: str, count: int) -> int:
    """Map the "last" and "middle" shortcuts to a 1-based answer number."""
    if ordinal == "last":
        return count
    if ordinal == "middle":
        return count // 2 + 1
    raise ValueError(f"Unknown ordinal: {ordinal}")


def find_display(choice: Optional[str], groups: Sequence[SynonymGroup]) -> Optional[int]:
    """1-based number of the group whose display form equals ``choice``."""
    for number, group in enumerate(groups, start=1):
        if compare_strings(group.display, choice):
            return number
    return None


def match_entity(choice: Optional[str], groups: Sequence[SynonymGroup]) -> Optional[int]:
    """Resolve an answer entity extracted by the language layer.

    The entity may name any form of an answer, or be the key of an answer
    from another question whose words overlap the presented ones.
    """
    if not choice:
        return None
    for number, group in enumerate(groups, start=1):
        if any(compare_strings(form, choice) for form in group.forms):
            return number
    entity_words = build_forms(choice)[1:]
    for number, group in enumerate(groups, start=1):
        for form in group.forms[1:]:
            if any(compare_strings(form, word) for word in entity_words):
                return number
    return None


def resolve_answer(
    raw_input: str, groups: Sequence[SynonymGroup], choice: Any = None
) -> Match:
    """Resolve a turn to a 1-based answer number.

    Precedence: a valid explicit choice, an exact match on a display form, a
    fuzzy match on any form, then a partial word match. Partial matching is
    skipped when the language layer already supplied a choice.
    """
    if choice is not None and is_valid_answer(choice, len(groups)):
        return Match(kind=MatchKind.CHOICE, number=parse_number(choice))

    raw_input = (raw_input or "").strip()
    if not raw_input:
        return UNRESOLVED

    number = find_display(raw_input, groups)
    if number is not None:
        return Match(kind=MatchKind.EXACT, number=number)

    for number, group in enumerate(groups, start=1):
        if any(fuzzy_match(form, raw_input) for form in group.forms):
            logger.debug(f"Fuzzy matched '{raw_input}' to answer {number}")
            return Match(kind=MatchKind.FUZZY, number=number)

    if choice is None:
        parts = raw_input.split()
        for number, group in enumerate(groups, start=1):
            if any(compare_strings(part, form) for part in parts for form in group.forms):
                logger.debug(f"Partial matched '{raw_input}' to answer {number}")
                return Match(kind=MatchKind.PARTIAL, number=number)

    return UNRESOLVED
