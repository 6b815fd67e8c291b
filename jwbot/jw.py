"""Client for the school's academic affairs (教务) mobile API."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from jwbot.http import HttpClient

_FLOOR_PATTERN = re.compile(r"(?:A01|20|30|第二教学楼|\[)(\d)(?:\d\d(\D|$)|楼)", re.ASCII)


class JwError(RuntimeError):
    """Raised when the academic affairs API cannot be reached or answers badly."""


@dataclass
class Course:
    """One lesson from the timetable."""

    name: str
    start_time: str
    end_time: str
    schedule: str
    instructor: str
    classroom: str
    week: int
    start_lesson: int
    end_lesson: int


@dataclass
class ExamResult:
    """One exam result; fields after the first missing one keep their defaults."""

    name: str = ""
    semester: str = ""
    course_category: str = ""
    course_nature: str = ""
    score: str = ""
    credit: float = 0.0


@dataclass
class ExamSchedule:
    """One scheduled exam."""

    course_name: str
    exam_room: str
    chinese_time: str
    time: str


@dataclass
class FreeClassroom:
    """A classroom that is free during the requested period."""

    classroom_name: str
    capacity: int
    campus_name: str
    building_name: str
    floor: int


class FreeTime(Enum):
    """Period of the day to look for free classrooms in."""

    ALL_DAY = "allday"
    AM = "am"
    PM = "pm"
    NIGHT = "night"


def get_floor(classroom: str) -> int:
    """Return the floor encoded in a classroom name, or -1 if there is none."""
    match = _FLOOR_PATTERN.search(classroom)
    if match is None:
        return -1
    return int(match.group(1))


def _lesson_number(part: str) -> int:
    return int(part) if part.isdigit() else 0


def _as_record(element: Any) -> dict[str, Any]:
    if not isinstance(element, dict):
        raise JwError("unexpected record in response")
    return element


def _optional_str(record: dict[str, Any], key: str) -> str:
    value = record.get(key)
    return value if isinstance(value, str) else "?"


def _required(record: dict[str, Any], key: str, kind: type) -> Any:
    value = record.get(key)
    if not isinstance(value, kind) or isinstance(value, bool):
        raise JwError(f"field {key!r} is missing or malformed")
    return value


def _records(data: Any) -> list[Any]:
    if not data:
        return []
    if not isinstance(data, list):
        raise JwError("unexpected response shape")
    if data[0] is None:
        return []
    return data


class Jw:
    """Session with the academic affairs system."""

    def __init__(self, api_prefix: str) -> None:
        self.api_prefix = api_prefix
        self._token = ""

    @property
    def token(self) -> str:
        """Token obtained by logging in; empty when not logged in."""
        return self._token

    def _fetch(self, query: str, with_token: bool = True) -> Any:
        client = HttpClient()
        if with_token:
            client.add_header("token", self._token)
        response = client.get(f"{self.api_prefix}/app.do?{query}")
        if not response.ready:
            raise JwError("请求无响应.")
        if response.status_code != 200:
            raise JwError("返回非 200 状态码.")
        try:
            return json.loads(response.content)
        except ValueError as exc:
            raise JwError(f"invalid JSON in response: {exc}") from exc

    def _require_login(self) -> None:
        if not self._token:
            raise JwError("尚未登录.")

    def login(self, uid: str, pwd: str) -> bool:
        """Log in and keep the returned token; raises JwError on failure."""
        data = _as_record(self._fetch(f"method=authUser&xh={uid}&pwd={pwd}", with_token=False))
        if data.get("flag") != "1":
            message = data.get("msg")
            raise JwError(message if isinstance(message, str) and message else "login failed")
        self._token = _required(data, "token", str)
        return True

    def get_courses(self, uid: str, week: int, semester: str = "") -> list[Course]:
        """Return the timetable of one week of a semester (current one if empty)."""
        self._require_login()
        data = self._fetch(f"method=getKbcxAzc&xh={uid}&xnxqid={semester}&zc={week}")
        courses = []
        for element in _records(data):
            record = _as_record(element)
            slot = _required(record, "kcsj", str)
            courses.append(
                Course(
                    name=_optional_str(record, "kcmc"),
                    start_time=_optional_str(record, "kssj"),
                    end_time=_optional_str(record, "jssj"),
                    schedule=_optional_str(record, "kkzc"),
                    instructor=_optional_str(record, "jsxm"),
                    classroom=_optional_str(record, "jsmc"),
                    week=_lesson_number(slot[0:1]),
                    start_lesson=_lesson_number(slot[1:3]),
                    end_lesson=_lesson_number(slot[3:5]),
                )
            )
        return courses

    def get_exam_result(self, uid: str, semester: str = "") -> list[ExamResult]:
        """Return exam results of a semester (current one if empty)."""
        self._require_login()
        data = self._fetch(f"method=getCjcx&xh={uid}&xnxqid={semester}")
        fields = (
            ("name", "kcmc", str),
            ("score", "zcj", str),
            ("credit", "xf", (int, float)),
            ("semester", "xqmc", str),
            ("course_category", "kclbmc", str),
            ("course_nature", "kcxzmc", str),
        )
        results = []
        for element in _records(data):
            result = ExamResult()
            record = element if isinstance(element, dict) else {}
            for attr, key, kind in fields:
                value = record.get(key)
                if not isinstance(value, kind) or isinstance(value, bool):
                    break
                setattr(result, attr, float(value) if attr == "credit" else value)
            results.append(result)
        return results

    def get_exam_schedule(self, uid: str) -> list[ExamSchedule]:
        """Return the scheduled exams of a student."""
        data = self._fetch(f"method=getKscx&xh={uid}")
        schedules = []
        for element in _records(data):
            record = _as_record(element)
            schedules.append(
                ExamSchedule(
                    course_name=_required(record, "kcmc", str),
                    exam_room=_required(record, "jsmc", str),
                    chinese_time=_required(record, "vksjc", str),
                    time=_required(record, "ksqssj", str),
                )
            )
        return schedules

    def get_major(self, uid: str) -> str:
        """Return the name of a student's major."""
        data = _as_record(self._fetch(f"method=getUserInfo&xh={uid}"))
        return _required(data, "zymc", str)

    def get_free_classroom(
        self, date: str, free_time: FreeTime, campus_id: str, building_id: str
    ) -> list[FreeClassroom]:
        """Return classrooms free on ``date`` during ``free_time``."""
        free_time = FreeTime(free_time)
        data = self._fetch(
            f"method=getKxJscx&time={date}&idleTime={free_time.value}"
            f"&xqid={campus_id}&jxlid={building_id}"
        )
        if isinstance(data, dict):
            return []
        if not isinstance(data, list) or not data:
            raise JwError("unexpected response shape")
        rooms = _as_record(data[0]).get("jsList") or []
        if not isinstance(rooms, list):
            raise JwError("unexpected response shape")
        classrooms = []
        for element in rooms:
            record = _as_record(element)
            name = _required(record, "jsmc", str)
            classrooms.append(
                FreeClassroom(
                    classroom_name=name,
                    capacity=_required(record, "zws", int),
                    campus_name=_required(record, "xqmc", str),
                    building_name=_required(record, "jzwmc", str),
                    floor=get_floor(name),
                )
            )
        return classrooms