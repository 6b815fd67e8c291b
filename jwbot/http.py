"""Small HTTP client with a cookie container and per-request headers."""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass
from urllib.parse import quote

import requests

DEFAULT_CONTENT_TYPE = "application/x-www-form-urlencoded"
DEFAULT_ACCEPT = "*/*"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/64.0.3282.140 Safari/537.36 Edge/17.17134"
)

_COOKIE_PATTERN = re.compile(r"([^=]+)=([^;]+);?\s*")
_SET_COOKIE_PATTERN = re.compile(r"Set-Cookie:([^=]+)=([^;]+);?\s*")


class CookieContainer(dict):
    """Cookies keyed by name; parsing never overwrites an existing cookie."""

    def __init__(self, cookies: str | None = None) -> None:
        super().__init__()
        if cookies:
            self.parse(cookies)

    def parse(self, cookies: str) -> None:
        """Add cookies from a ``name=value; name=value`` string."""
        for match in _COOKIE_PATTERN.finditer(cookies):
            self.setdefault(match.group(1).strip(" "), match.group(2).strip(" "))

    def absorb_set_cookie(self, header_text: str) -> None:
        """Add cookies found in ``Set-Cookie`` lines of raw header text."""
        for match in _SET_COOKIE_PATTERN.finditer(header_text):
            self.setdefault(match.group(1).strip(" "), match.group(2).strip(" "))

    def remove(self, key: str) -> bool:
        """Remove a cookie; return whether it was present."""
        if key in self:
            del self[key]
            return True
        return False

    def __str__(self) -> str:
        return "".join(f"{key}={value}; " for key, value in sorted(self.items()))


@dataclass
class HttpResponse:
    """Outcome of one request; ``ready`` is False when the transfer failed."""

    ready: bool = False
    status_code: int = 0
    error_msg: str = ""
    content: str = ""


def _header_text(response: requests.Response) -> str:
    lines = []
    for resp in [*response.history, response]:
        raw_headers = getattr(resp.raw, "headers", None)
        if raw_headers is not None and hasattr(raw_headers, "getlist"):
            for name in raw_headers:
                lines.extend(f"{name}: {value}" for value in raw_headers.getlist(name))
        else:
            lines.extend(f"{name}: {value}" for name, value in resp.headers.items())
    return "\r\n".join(lines) + "\r\n"


class HttpClient:
    """HTTP client whose extra headers and form parts last for one request."""

    def __init__(self) -> None:
        self.follow_redirect = True
        self.timeout = 120
        self.max_redirects = 5
        self.cookies = CookieContainer()
        self.content_type = DEFAULT_CONTENT_TYPE
        self.accept = DEFAULT_ACCEPT
        self.user_agent = ""
        self._headers: dict[str, str] = {}
        self._form: list[tuple[str, str, str]] = []

    def add_header(self, name: str, value: str) -> HttpClient:
        """Add a header to the next request."""
        self._headers[name] = value
        return self

    def add_post_data(self, name: str, data: str) -> HttpClient:
        """Add a text field to the multipart form of the next bare POST."""
        self._form.append(("data", name, data))
        return self

    def add_file(self, name: str, file_name: str) -> HttpClient:
        """Add a file field, read when the next bare POST is sent."""
        self._form.append(("file", name, file_name))
        return self

    @staticmethod
    def url_encode(text: str) -> str:
        """Percent-encode everything except unreserved characters."""
        return quote(text, safe="")

    def get(self, url: str) -> HttpResponse:
        return self._execute("GET", url)

    def post(self, url: str, data: str | None = None) -> HttpResponse:
        """POST ``data`` as the body, or the collected form when ``data`` is None."""
        if data is not None:
            return self._execute("POST", url, body=data)
        return self._execute("POST", url, multipart=True)

    def _build_files(self) -> list[tuple[str, tuple[str | None, bytes]]]:
        files = []
        for kind, name, value in self._form:
            if kind == "file":
                with open(value, "rb") as handle:
                    files.append((name, (os.path.basename(value), handle.read())))
            else:
                files.append((name, (None, value.encode("utf-8"))))
        return files

    def _execute(
        self, method: str, url: str, body: str | None = None, multipart: bool = False
    ) -> HttpResponse:
        headers: dict[str, str | None] = {
            "User-Agent": self.user_agent or None,
            "Accept": self.accept,
        }
        if self.content_type and not multipart:
            headers["Content-Type"] = self.content_type
        if self.cookies:
            headers["Cookie"] = str(self.cookies)
        headers.update(self._headers)

        result = HttpResponse()
        try:
            files = self._build_files() if multipart and self._form else None
            with requests.Session() as session, warnings.catch_warnings():
                warnings.filterwarnings("ignore", message="Unverified HTTPS request")
                session.max_redirects = self.max_redirects
                response = session.request(
                    method,
                    url,
                    headers=headers,
                    data=body.encode("utf-8") if body is not None else None,
                    files=files,
                    timeout=self.timeout,
                    allow_redirects=self.follow_redirect,
                    verify=False,
                )
            self.cookies.absorb_set_cookie(_header_text(response))
            result.ready = True
            result.status_code = response.status_code
            result.content = response.text
        except (requests.RequestException, OSError) as exc:
            result.ready = False
            result.error_msg = str(exc) or type(exc).__name__
        finally:
            self._headers = {}
            self._form = []
        return result