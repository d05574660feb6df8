from typing import List, Optional
from xml.sax.saxutils import escape

from pydantic import BaseModel, Field

from .config import settings
from .synonyms import display_form

YES = "yes"
NO = "no"
TRUE = "true"
FALSE = "false"


class Ssml:
    """Builds a ``<speak>`` response from spoken text and pauses."""

    def __init__(self):
        self.tags: List[str] = []

    def say(self, value: Optional[str]) -> "Ssml":
        if value:
            self.tags.append(escape(value))
        return self

    def pause(self, duration: Optional[str] = settings.TTS_DELAY) -> "Ssml":
        if duration:
            self.tags.append(f"<break time='{duration}'/>")
        return self

    def __bool__(self) -> bool:
        return bool(self.tags)

    def __str__(self) -> str:
        return f"<speak>{' '.join(self.tags)}</speak>"


class Presentation(BaseModel):
    """How the answer choices are shown on a device with a screen."""

    suggestions: List[str] = Field(default_factory=list)
    list_items: List[str] = Field(default_factory=list)


def choice_labels(answers: List[str]) -> List[str]:
    return [display_form(answer) for answer in answers if display_form(answer)]


def say_choices(ssml: Ssml, labels: List[str]) -> None:
    """Read the choices out as "a, b, or c."."""
    for i, label in enumerate(labels):
        ssml.pause()
        if i == len(labels) - 1 and len(labels) > 1:
            ssml.say(f" or {label}.")
        else:
            ssml.say(f"{label}, ")


def present_choices(labels: List[str], true_false: bool, has_screen: bool) -> Presentation:
    """Suggestion chips when they fit, otherwise a selectable list."""
    if not has_screen or not labels:
        return Presentation()
    if true_false:
        return Presentation(suggestions=[TRUE, FALSE])
    use_list = len(labels) > settings.SUGGESTION_CHIPS_MAX or any(
        len(label) > settings.SUGGESTION_CHIPS_MAX_TEXT_LENGTH for label in labels
    )
    if use_list:
        return Presentation(list_items=list(labels))
    return Presentation(suggestions=list(labels))
