"""Outcome categories for classified calls.

The ten categories are a closed set. Declaration order matters: it is the order
shown to the model in the prompt, the order of the stats table, and the
tie-break order of the keyword scorer.
"""

from enum import Enum
from typing import Optional


class CallCategory(str, Enum):
    """Final outcome of a call."""

    FAILED = "Failed"
    HANGUP = "Hangup"
    LEAD = "Lead"
    NO_ANSWER = "No Answer"
    NON_VIABLE_CLIENT = "Non-Viable Client"
    NOT_INTERESTED = "Not Interested"
    RECALL = "Recall"
    VOICEMAIL = "Voicemail"
    WRONG_NUMBER = "Wrong Number"
    COMPLETED = "Completed"


# Ordered list for prompt rendering and stats
CATEGORY_ORDER = list(CallCategory)

CATEGORY_DEFINITIONS: dict[CallCategory, str] = {
    CallCategory.FAILED: "The call failed for technical reasons",
    CallCategory.HANGUP: "The client hung up abruptly",
    CallCategory.LEAD: "The client showed genuine interest",
    CallCategory.NO_ANSWER: "Nobody answered the call",
    CallCategory.NON_VIABLE_CLIENT: "The client does not qualify for the product or service",
    CallCategory.NOT_INTERESTED: "The client clearly said they are not interested",
    CallCategory.RECALL: "The client asked to be called back later",
    CallCategory.VOICEMAIL: "A message was left on voicemail",
    CallCategory.WRONG_NUMBER: "The number reached the wrong person",
    CallCategory.COMPLETED: "The call was completed successfully",
}

_BY_VALUE = {category.value: category for category in CallCategory}


def parse_category(value: object) -> Optional[CallCategory]:
    """
    Map a raw value to a CallCategory.

    Matching is exact on the category name, including case. Leading and
    trailing whitespace is tolerated because local models often pad string
    values; inner spacing must still match ("No  Answer" is rejected).
    Returns None for anything that is not one of the ten names (wrong case,
    non-string, unknown label).
    """
    if isinstance(value, CallCategory):
        return value
    if not isinstance(value, str):
        return None
    return _BY_VALUE.get(value.strip())


def list_categories() -> list[str]:
    """Category names in declaration order, for populating UI selectors."""
    return [category.value for category in CATEGORY_ORDER]
