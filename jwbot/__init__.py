"""Campus timetable bot toolkit: academic system client, SQLite storage, mirai-api-http bot and helpers."""

__version__ = "1.2.0"