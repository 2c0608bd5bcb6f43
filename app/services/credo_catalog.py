"""
The fixed catalog of 11 credo items, in canonical display order.

Ids are stable strings stored in credo_practice_logs.credo_id.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CredoItem:
    id: str
    order: int
    category: str
    title: str
    description: str


CREDO_ITEMS: tuple[CredoItem, ...] = (
    CredoItem("credo-1", 1, "Getting ready to learn", "Plan today first thing in the morning",
              "Write down three things: homework, test prep, club. When unsure, start with homework."),
    CredoItem("credo-2", 2, "Reflection", "Spend five minutes reviewing the day at night",
              "Note what went well, what was hard and one thank-you, then carry it into tomorrow."),
    CredoItem("credo-3", 3, "Task management", "Split big assignments into three steps",
              "Cut work into 15-minute blocks and tick each one off when finished."),
    CredoItem("credo-4", 4, "Sleep and health", "Screens off before bed",
              "Put the phone away an hour before sleep; breathe deeply or stretch instead."),
    CredoItem("credo-5", 5, "Exercise", "Three sets of mini exercise every day",
              "Push-ups, sit-ups and stretching, three sets. Short is fine, consistency matters."),
    CredoItem("credo-6", 6, "Asking for help", "Ask about anything unclear within ten minutes",
              "Leave a question note for a teacher, a friend or the AI and resolve it early."),
    CredoItem("credo-7", 7, "Focus and breaks", "50 minutes of focus plus a 10-minute break",
              "Use pomodoros. Spend breaks standing, walking or drinking water."),
    CredoItem("credo-8", 8, "Challenge", "Pick one small challenge for today",
              "Solve one more problem than usual or try one problem you have never seen."),
    CredoItem("credo-9", 9, "Environment", "Reset your desk in two minutes",
              "Clear what you do not need and lay out tomorrow's textbooks and notebooks."),
    CredoItem("credo-10", 10, "Communication", "Say thank you to one person",
              "Thank a family member or a friend and keep the mood positive."),
    CredoItem("credo-11", 11, "Closing the day", "Write down tomorrow's most important thing",
              "Decide on just one thing for tomorrow so the morning starts without hesitation."),
)

CREDO_IDS: frozenset[str] = frozenset(item.id for item in CREDO_ITEMS)

_BY_ID = {item.id: item for item in CREDO_ITEMS}

HEALTH_KEYWORDS = ("sleep", "health", "rest", "fatigue", "meal")


def get_item(credo_id: str) -> CredoItem | None:
    return _BY_ID.get(credo_id)


def is_health_item(item: CredoItem) -> bool:
    haystack = f"{item.category} {item.title}".lower()
    return any(kw in haystack for kw in HEALTH_KEYWORDS)
