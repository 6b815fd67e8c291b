"""Date, semester and grade helpers used by the bot's commands."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timedelta

from jwbot.database import Course
from jwbot.jw import ExamResult
from jwbot.message_chain import MessageChain

_SECONDS_PER_WEEK = 7 * 24 * 60 * 60
_MAX_WEEK = 20
_NUMBER_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_WORD_GRADES = {
    "优": 4.5,
    "良": 3.5,
    "中": 2.5,
    "及格": 1.5,
    "不及格": 0.0,
    "合格": 3.5,
    "不合格": 0.0,
}


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now()


def current_date(now: datetime | None = None) -> str:
    """Return today's date as yyyy-mm-dd."""
    return _now(now).strftime("%Y-%m-%d")


def tomorrow_date(now: datetime | None = None) -> str:
    """Return tomorrow's date as yyyy-mm-dd."""
    return (_now(now) + timedelta(days=1)).strftime("%Y-%m-%d")


def hour24(now: datetime | None = None) -> int:
    """Return the hour of the day, 0 to 23."""
    return _now(now).hour


def weekday_today(now: datetime | None = None) -> int:
    """Return the day of the week, Monday 1 to Sunday 7."""
    return _now(now).isoweekday()


def week_of_semester(first_day: float, now: datetime | None = None) -> int:
    """Return the teaching week counted from the ``first_day`` timestamp, at most 20."""
    diff = int(_now(now).timestamp() - first_day)
    weeks = abs(diff) // _SECONDS_PER_WEEK
    if diff < 0:
        weeks = -weeks
    return min(weeks + 1, _MAX_WEEK)


def this_semester() -> str:
    """Return the current semester in the API's format."""
    return "2020-2021-2"


def last_semester() -> str:
    """Return the previous semester in the API's format."""
    return "2020-2021-1"


def score_to_grade_point(score: str) -> float:
    """Convert a numeric or worded score to a grade point."""
    match = _NUMBER_PREFIX.match(score)
    value = float(match.group()) if match else 0.0
    if value >= 60:
        return value / 10.0 - 5
    if not value > 0:
        return _WORD_GRADES.get(score, value)
    return 0.0


def format_courses(courses: Iterable[Course]) -> MessageChain:
    """Render courses as numbered lines: name, classroom and time."""
    chain = MessageChain()
    for index, course in enumerate(courses, start=1):
        (
            chain.plain(index)
            .plain(". ")
            .plain(course.name)
            .plain("，")
            .plain(course.classroom)
            .plain("，")
            .plain(course.time)
            .plain("\n")
        )
    return chain


def calc_gpa(results: Iterable[ExamResult]) -> tuple[float, float]:
    """Return the credit-weighted GPA and the GPA without school electives.

    A GPA over no credits is NaN.
    """
    total = credits = 0.0
    total_required = credits_required = 0.0
    for exam in results:
        point = score_to_grade_point(exam.score)
        if exam.course_category != "校选":
            total_required += point * exam.credit
            credits_required += exam.credit
        total += point * exam.credit
        credits += exam.credit

    def ratio(numerator: float, denominator: float) -> float:
        return numerator / denominator if denominator else float("nan")

    return ratio(total, credits), ratio(total_required, credits_required)