"""Prompt templates for AI operations."""

from .follow_up import (
    FIRST_CONTACT_SECTION,
    FOLLOW_UP_DEVELOPER,
    FOLLOW_UP_SYSTEM,
    FOLLOW_UP_TASK,
    HISTORY_SECTION,
    TONE_STYLES,
)

__all__ = [
    "FOLLOW_UP_SYSTEM",
    "FOLLOW_UP_DEVELOPER",
    "FOLLOW_UP_TASK",
    "HISTORY_SECTION",
    "FIRST_CONTACT_SECTION",
    "TONE_STYLES",
]
