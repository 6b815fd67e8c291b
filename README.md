# jwbot

Building blocks for a chat bot that answers students' timetable questions:

- `jwbot.jw` – a client for the academic affairs system's app API: log in,
  fetch a week's courses, exam results, exam schedules, a student's major and
  free classrooms. Failures raise `JwError`.
- `jwbot.database` – SQLite storage for users (bound student ids,
  subscriptions), their cached courses and news items.
- `jwbot.api` – `MiraiApi`, a client for a mirai-api-http server (sending
  messages, uploads, group management, commands, session handling). Failures
  raise `MiraiError`.
- `jwbot.bot` – `MiraiBot`, a `MiraiApi` that fetches events over WebSocket
  or HTTP polling and runs registered handlers on a thread pool.
- `jwbot.events` – typed events (`FriendMessage`, `GroupMessage`,
  `TempMessage`, `Message`, request events, `CommandEvent`).
- `jwbot.message_chain` – `MessageChain`, a list of message segments in the
  mirai JSON format.
- `jwbot.keywords` – `KeywordParser`, a chainable matcher for chat commands.
- `jwbot.helpers` – dates, teaching weeks, grade points, GPA and course
  formatting.
- `jwbot.http` – `HttpClient`, a small HTTP client with a `CookieContainer`.

Requires Python 3.10 or later. Runtime dependencies are `requests` and
`websocket-client`.

## Matching chat commands

```python
from jwbot.keywords import KeywordParser

if KeywordParser("  绑定学号 s001 ").start_with("绑定学号"):
    ...

if KeywordParser("明天课表").end_with(["课表", "课程"]):
    ...
```

The phrase is trimmed of spaces. A parser is truthy while every check in the
chain has matched; once a check fails, later checks leave it false.
`contains` and `and_with` look for keywords after the position reached by
earlier checks; `equals` and `end_with` accept one string or several.

## Talking to the academic system

```python
from jwbot.jw import Jw, FreeTime, JwError

jw = Jw("http://jw.example.com")
password = "password"
try:
    jw.login("s001", password)
    for course in jw.get_courses("s001", 3, ""):
        print(course.name, course.classroom, course.start_time, course.end_time)
    rooms = jw.get_free_classroom("2021-03-01", FreeTime.AM, "1", "")
except JwError as err:
    print("request failed:", err)
```

`get_courses` and `get_exam_result` raise `JwError` when not logged in; an
empty semester string means the current one. `get_floor("A01305")` extracts
the floor number from a classroom name, or returns `-1` when it cannot tell.

## Storing users and news

```python
from jwbot.database import UserDatabase, NewsDatabase

with UserDatabase("jwbot.db") as users:
    users.add(10000, "s001")
    users.insert_course(10000, "Calculus", "A01305", "08:20", "10:00", 3, 1)
    print(users.get_courses(10000, 3, 1))
    users.update_morning_subscription(10000, True)
    print(users.get_morning_subscribers(3, 1))

with NewsDatabase("jwbot.db") as news:
    if not news.exist("Exam week notice"):
        news.add("Exam week notice", "2021-06-01", "http://jw.example.com/news/1")
    print(news.get_latest_news())   # the five newest, newest first
```

Tables are created when a database is opened. `delete` drops a user's
courses, student id and subscriptions; `get_user_count_by_grade(19)` counts
student ids starting with `6319`. `course_time_to_index("10:20")` and
`course_index_to_time(3)` convert between lesson boundary times and their
1-based positions in the day.

## Running a bot

```python
from jwbot.bot import MiraiBot
from jwbot.events import GroupMessage
from jwbot.message_chain import MessageChain

bot = MiraiBot("127.0.0.1", 8080, 4)
bot.auth("placeholder", 10000)

def echo(message):
    message.quote_reply(MessageChain().plain("收到: ") + message.message_chain)

bot.on(GroupMessage, echo)
bot.event_loop(print)
```

`on` takes an event class or the name of an event type as the server sends
it; `Message` matches friend, group and temp messages alike. Events are read
over WebSocket by default; call `bot.use_http()` before `event_loop` to poll
over HTTP instead. Errors raised while fetching events are passed to the
error logger (or printed to stderr) and the loop carries on; when the server
reports a lost session the bot authenticates again. `close()` stops the loop,
releases the session and waits for running handlers.

## Helpers

```python
from jwbot.helpers import score_to_grade_point, calc_gpa, format_courses, week_of_semester

score_to_grade_point("90")   # 4.0
score_to_grade_point("优")   # 4.5
```

`calc_gpa` takes exam results and returns the credit-weighted GPA over all
courses and over the courses that are not school electives ("校选"); a GPA
over no credits is NaN. `format_courses` renders stored courses as a numbered
`MessageChain`. `week_of_semester(first_day)` counts teaching weeks from a
Unix timestamp, capped at 20.

## What is not included

The package has no ready-to-run bot: there are no handlers for the bot's chat
commands, no scheduled jobs (morning timetables, news pushes, periodic
re-login), no configuration loading and no command-line entry point. It does
not fetch or parse news pages; `NewsDatabase` only stores items it is given.
`this_semester()` and `last_semester()` return fixed values.

## Tests

The test suite uses `pytest` and `responses`; both are listed in the `test`
extra.