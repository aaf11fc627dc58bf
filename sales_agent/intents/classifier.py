"""Intent classification for user utterances."""
import logging
import re
from abc import ABC, abstractmethod
from typing import Optional, Sequence
from langsmith import traceable
from sales_agent.config import settings
from sales_agent.models.domain import Intent, IntentType, Utterance

logger = logging.getLogger(__name__)

CREATION_CUES = ("yes", "create", "draft")
DISCOUNT_CUES = ("discount", "%")
APPROVAL_CUES = ("approve", "ask")

PERCENT_PATTERN = re.compile(r"(\d+)%")

MAX_PERCENT = 100


class IntentClassifier(ABC):
    """Maps an utterance to an intent. Implementations must be total and side-effect free."""

    @abstractmethod
    def classify(self, utterance: Utterance) -> Intent:
        """Classify a single utterance."""


class KeywordIntentClassifier(IntentClassifier):
    """
    Rule-based classifier using case-insensitive substring cues.

    Cue groups are checked in a fixed priority order (creation, discount,
    approval), so an utterance matching several groups always resolves to
    the highest-priority one regardless of where the cues appear.
    """

    def __init__(
        self,
        default_discount_percent: Optional[int] = None,
        approver_tokens: Optional[Sequence[str]] = None,
    ):
        """
        Initialize keyword classifier.

        Args:
            default_discount_percent: Percent used when a discount cue carries no number
            approver_tokens: Named-approver tokens that signal an approval request
        """
        if default_discount_percent is None:
            default_discount_percent = settings.default_discount_percent
        if approver_tokens is None:
            approver_tokens = (settings.approver_first_name,)

        self.default_discount_percent = default_discount_percent
        self.approval_cues = APPROVAL_CUES + tuple(token.lower() for token in approver_tokens)

    @traceable(name="classify_utterance")
    def classify(self, utterance: Utterance) -> Intent:
        text = utterance.text.lower()

        if _contains_any(text, CREATION_CUES):
            intent = Intent(type=IntentType.CREATE_PROPOSAL)
        elif _contains_any(text, DISCOUNT_CUES):
            intent = Intent(
                type=IntentType.APPLY_DISCOUNT,
                discount_percent=self.extract_percent(utterance.text),
            )
        elif _contains_any(text, self.approval_cues):
            intent = Intent(type=IntentType.REQUEST_APPROVAL)
        else:
            intent = Intent(type=IntentType.UNKNOWN)

        logger.debug(f"CLASSIFIER: '{utterance.text}' -> {intent.type.value}")
        return intent

    def extract_percent(self, text: str) -> int:
        """Return the first integer directly followed by '%', or the fallback percent."""
        match = PERCENT_PATTERN.search(text)
        if match:
            digits = match.group(1).lstrip("0")
            # Anything past three digits is over 100% anyway
            if len(digits) > 3:
                return MAX_PERCENT
            return int(digits or "0")
        return self.default_discount_percent


def _contains_any(text: str, cues: Sequence[str]) -> bool:
    return any(cue in text for cue in cues)
