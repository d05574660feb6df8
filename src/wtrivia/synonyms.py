"""Synonym groups for the answers of one question.

A canonical answer is either a phrase (``"City of Light"``) or a pipe-delimited
list of alternate phrasings (``"Paris|City of Light"``). Each answer is expanded
into the phrases and individual words a player may say, and any form shared by
two answers of the same question is dropped so that it cannot select either.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

SEPARATOR = "|"
IGNORED_WORDS = frozenset({"the", "a", "and", "or", "&", "of", "for", "an", "by"})


class SynonymGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    canonical: str
    forms: Tuple[str, ...]

    @property
    def display(self) -> str:
        return display_form(self.canonical)


def split_synonyms(value: str) -> List[str]:
    if not value:
        return []
    return [synonym.strip() for synonym in value.split(SEPARATOR)]


def display_form(value: str) -> str:
    synonyms = split_synonyms(value)
    return synonyms[0] if synonyms else ""


def word_forms(phrase: str) -> List[str]:
    return [word for word in phrase.split() if word.lower() not in IGNORED_WORDS]


def _append_unique(forms: List[str], value: str) -> None:
    if value and value not in forms:
        forms.append(value)


def build_forms(value: str) -> List[str]:
    """Matchable forms of one canonical answer before cross-deduplication."""
    value = value.strip()
    forms: List[str] = []
    if SEPARATOR not in value:
        words = word_forms(value)
        if value not in words:
            _append_unique(forms, value)
        for word in words:
            _append_unique(forms, word)
        return forms

    segments = split_synonyms(value)
    _append_unique(forms, value)
    for segment in segments:
        _append_unique(forms, segment)
    for segment in segments:
        for word in word_forms(segment):
            _append_unique(forms, word)
    return forms


def build_synonym_groups(values: Sequence[str]) -> List[SynonymGroup]:
    """Build one group per answer, removing every form claimed by more than one answer."""
    all_forms = [build_forms(value) for value in values]

    owners: Dict[str, int] = {}
    for forms in all_forms:
        for key in {form.lower() for form in forms}:
            owners[key] = owners.get(key, 0) + 1
    shared = {key for key, count in owners.items() if count > 1}
    if shared:
        logger.debug(f"Removing shared synonyms {sorted(shared)} from {list(values)}")

    groups = []
    for value, forms in zip(values, all_forms):
        kept = tuple(form for form in forms if form.lower() not in shared)
        if not kept:
            kept = (value.strip(),)
        groups.append(SynonymGroup(canonical=value.strip(), forms=kept))
    return groups
