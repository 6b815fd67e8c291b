"""Chainable keyword matching for incoming chat commands."""

from __future__ import annotations

from collections.abc import Iterable


def _as_list(values: str | Iterable[str]) -> list[str]:
    if isinstance(values, str):
        return [values]
    return list(values)


class KeywordParser:
    """Match a trimmed phrase against keywords with chained checks.

    Each check only runs while every earlier check succeeded; the truth
    value of the parser is the outcome of the whole chain.
    """

    def __init__(self, words: str) -> None:
        self._words = words.strip(" ")
        self._result = True
        self._pos = 0

    def __bool__(self) -> bool:
        return self._result

    def __repr__(self) -> str:
        return f"KeywordParser({self._words!r}, result={self._result})"

    def _find_from_pos(self, keyword: str) -> None:
        pos = self._pos
        if self._words.find(keyword, pos) != -1:
            self._result = True
            self._pos += pos + len(keyword)
        else:
            self._result = False

    def contains(self, keyword: str) -> KeywordParser:
        """Require ``keyword`` to appear after the current position."""
        if self._result:
            self._find_from_pos(keyword)
        return self

    def start_with(self, keyword: str) -> KeywordParser:
        """Require the phrase to begin with ``keyword``."""
        if not self._result:
            return self
        if self._words.startswith(keyword):
            self._result = True
            self._pos = len(keyword)
        else:
            self._result = False
        return self

    def and_with(self, keywords: str | Iterable[str]) -> KeywordParser:
        """Require one of ``keywords`` to appear after the current position."""
        if not self._result:
            return self
        for keyword in _as_list(keywords):
            self._find_from_pos(keyword)
            if self._result:
                break
        return self

    def equals(self, strs: str | Iterable[str]) -> KeywordParser:
        """Require the phrase to equal one of ``strs``."""
        if not self._result:
            return self
        for candidate in _as_list(strs):
            self._result = self._words == candidate
            if self._result:
                break
        return self

    def end_with(self, strs: str | Iterable[str]) -> KeywordParser:
        """Require the phrase to end with one of ``strs``."""
        if not self._result:
            return self
        for candidate in _as_list(strs):
            self._result = self._words.endswith(candidate)
            if self._result:
                break
        return self