"""SQLite storage for users, their timetables and news items."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from os import PathLike

DB_FILE_NAME = "jwbot.db"

COURSE_TIMES = (
    "08:20",
    "10:00",
    "10:20",
    "12:00",
    "14:00",
    "15:40",
    "16:00",
    "17:40",
    "19:00",
    "20:40",
    "21:00",
    "22:40",
)


def course_time_to_index(time: str) -> int:
    """Return the 1-based slot of a lesson boundary time, or 0 if unknown."""
    try:
        return COURSE_TIMES.index(time) + 1
    except ValueError:
        return 0


def course_index_to_time(index: int) -> str:
    """Return the lesson boundary time for a 1-based slot."""
    if not 1 <= index <= len(COURSE_TIMES):
        raise ValueError(f"course time index out of range: {index}")
    return COURSE_TIMES[index - 1]


@dataclass
class Course:
    """A stored lesson."""

    name: str
    classroom: str
    start_time: str
    end_time: str

    @property
    def time(self) -> str:
        return f"{self.start_time}-{self.end_time}"


@dataclass
class News:
    """A stored news item."""

    title: str
    url: str
    time: str


def _connect(path: str | PathLike[str]) -> sqlite3.Connection:
    return sqlite3.connect(path, isolation_level=None)


class _QueryMixin:
    _db: sqlite3.Connection

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self._db.close()

    def _column(self, sql: str, params: tuple = ()) -> list:
        return [row[0] for row in self._db.execute(sql, params)]


class UserDatabase(_QueryMixin):
    """Users, their student ids, subscriptions and stored courses."""

    def __init__(self, path: str | PathLike[str] = DB_FILE_NAME) -> None:
        self._db = _connect(path)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        self._db.executescript(
            """
            CREATE TABLE IF NOT EXISTS user_info (
                qq INTEGER PRIMARY KEY,
                sid TEXT,
                news_subscriber INTEGER NOT NULL DEFAULT 0,
                morning_subscriber INTEGER NOT NULL DEFAULT 0
            );
            CREATE TABLE IF NOT EXISTS courses (
                qq INTEGER NOT NULL,
                name TEXT,
                classroom TEXT,
                start_time TEXT,
                end_time TEXT,
                week_of_semester INTEGER,
                week INTEGER
            );
            """
        )

    def close(self) -> None:
        self._db.close()

    def add(self, qq: int, sid: str | None = None) -> int:
        """Insert a user, optionally with a student id; return rows changed."""
        if sid is None:
            cursor = self._db.execute("INSERT INTO user_info (qq) VALUES (?)", (qq,))
        else:
            cursor = self._db.execute("INSERT INTO user_info (qq,sid) VALUES (?,?)", (qq, sid))
        return cursor.rowcount

    def exist(self, qq: int) -> bool:
        row = self._db.execute("SELECT sid FROM user_info WHERE qq = ?", (qq,)).fetchone()
        return row is not None

    def get_sid(self, qq: int) -> str:
        """Return the user's student id, or an empty string."""
        row = self._db.execute("SELECT sid FROM user_info WHERE qq = ?", (qq,)).fetchone()
        if row is None or row[0] is None:
            return ""
        return str(row[0])

    def update_sid(self, qq: int, sid: str) -> int:
        cursor = self._db.execute("UPDATE user_info SET sid = ? WHERE qq = ?", (sid, qq))
        return cursor.rowcount

    def clear_courses(self, qq: int) -> int:
        return self._db.execute("DELETE FROM courses WHERE qq = ?", (qq,)).rowcount

    def delete(self, qq: int) -> int:
        """Drop the user's courses, student id and subscriptions."""
        removed = self.clear_courses(qq)
        cursor = self._db.execute(
            "UPDATE user_info SET sid = NULL, news_subscriber = 0, morning_subscriber = 0 "
            "WHERE qq = ?",
            (qq,),
        )
        return removed + cursor.rowcount

    def get_all_users(self) -> list[int]:
        """Return every user that has a student id bound."""
        return self._column("SELECT qq FROM user_info WHERE sid IS NOT NULL")

    def get_user_count_all(self) -> int:
        return self._column("SELECT COUNT(sid) FROM user_info")[0]

    def get_user_count_by_grade(self, grade: int) -> int:
        """Count users whose student id belongs to the given two-digit grade."""
        pattern = f"63{int(grade):02d}%"
        return self._column("SELECT COUNT(sid) FROM user_info WHERE sid LIKE ?", (pattern,))[0]

    def update_news_subscription(self, qq: int, subscription: bool) -> None:
        self._db.execute(
            "UPDATE user_info SET news_subscriber = ? WHERE qq = ?", (int(bool(subscription)), qq)
        )

    def update_morning_subscription(self, qq: int, subscription: bool) -> None:
        self._db.execute(
            "UPDATE user_info SET morning_subscriber = ? WHERE qq = ?",
            (int(bool(subscription)), qq),
        )

    def get_news_subscribers(self) -> list[int]:
        return self._column("SELECT qq FROM user_info WHERE news_subscriber = 1")

    def get_morning_subscribers(
        self, week_of_semester: int | None = None, week: int | None = None
    ) -> list[int]:
        """Return morning subscribers with courses, ordered by lesson start.

        With ``week_of_semester`` and ``week`` only users having a course on
        that day are returned.
        """
        sql = (
            "SELECT DISTINCT courses.qq FROM courses "
            "INNER JOIN user_info ON user_info.qq = courses.qq "
            "WHERE user_info.morning_subscriber = 1"
        )
        params: tuple = ()
        if week_of_semester is not None or week is not None:
            sql += " AND courses.week_of_semester = ? AND courses.week = ?"
            params = (week_of_semester, week)
        return self._column(sql + " ORDER BY courses.start_time", params)

    def insert_course(
        self,
        qq: int,
        name: str,
        classroom: str,
        start_time: str,
        end_time: str,
        week_of_semester: int,
        week: int,
    ) -> int:
        cursor = self._db.execute(
            "INSERT INTO courses "
            "(qq, name, classroom, start_time, end_time, week_of_semester, week) "
            "VALUES (?,?,?,?,?,?,?)",
            (qq, name, classroom, start_time, end_time, week_of_semester, week),
        )
        return cursor.rowcount

    def get_courses(self, qq: int, week_of_semester: int, week: int) -> list[Course]:
        rows = self._db.execute(
            "SELECT name, classroom, start_time, end_time FROM courses "
            "WHERE qq = ? AND week_of_semester = ? AND week = ?",
            (qq, week_of_semester, week),
        )
        return [Course(*(value or "" for value in row)) for row in rows]


class NewsDatabase(_QueryMixin):
    """News items already seen."""

    def __init__(self, path: str | PathLike[str] = DB_FILE_NAME) -> None:
        self._db = _connect(path)
        self.ensure_schema()

    def ensure_schema(self) -> None:
        self._db.execute(
            "CREATE TABLE IF NOT EXISTS news (title TEXT, date TEXT, url TEXT)"
        )

    def close(self) -> None:
        self._db.close()

    def add(self, title: str, date: str, url: str) -> None:
        self._db.execute("INSERT INTO news (title, date, url) VALUES (?,?,?)", (title, date, url))

    def exist(self, title: str) -> bool:
        row = self._db.execute("SELECT title FROM news WHERE title = ?", (title,)).fetchone()
        return row is not None

    def get_latest_news(self) -> list[News]:
        """Return the five newest items, newest first."""
        rows = self._db.execute("SELECT title, date, url FROM news ORDER BY date DESC LIMIT 5")
        return [News(title=title, url=url, time=date) for title, date, url in rows]