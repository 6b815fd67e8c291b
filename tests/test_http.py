import pytest
import responses

from jwbot.http import (
    DEFAULT_ACCEPT,
    DEFAULT_CONTENT_TYPE,
    CookieContainer,
    HttpClient,
)

URL = "http://jw.example.com/app.do"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def test_cookie_parse():
    cc = CookieContainer("a=1; b=2")
    assert dict(cc) == {"a": "1", "b": "2"}


def test_cookie_parse_trims_spaces():
    cc = CookieContainer(" a = 1 ;b=2")
    assert cc["a"] == "1"
    assert cc["b"] == "2"


def test_cookie_parse_does_not_overwrite():
    cc = CookieContainer("a=1")
    cc.parse("a=2; c=3")
    assert cc["a"] == "1"
    assert cc["c"] == "3"


def test_cookie_assignment_overwrites():
    cc = CookieContainer("a=1")
    cc["a"] = "9"
    assert cc["a"] == "9"


def test_cookie_str_round_trip():
    cc = CookieContainer("b=2; a=1")
    text = str(cc)
    assert text.startswith("a=1; ")
    assert dict(CookieContainer(text)) == dict(cc)


def test_cookie_remove():
    cc = CookieContainer("a=1")
    assert cc.remove("a") is True
    assert cc.remove("a") is False
    assert "a" not in cc


def test_cookie_missing_key_raises():
    with pytest.raises(KeyError):
        CookieContainer("a=1")["b"]


def test_url_encode():
    assert HttpClient.url_encode("a b&c") == "a%20b%26c"
    assert HttpClient.url_encode("a-b_c.d~e") == "a-b_c.d~e"


def test_get_sends_default_headers_and_reads_body(rsps):
    rsps.add(responses.GET, URL, body="hello", status=200)
    client = HttpClient()
    resp = client.get(URL)
    assert resp.ready is True
    assert resp.status_code == 200
    assert resp.content == "hello"
    sent = rsps.calls[0].request.headers
    assert sent["Accept"] == DEFAULT_ACCEPT
    assert sent["Content-Type"] == DEFAULT_CONTENT_TYPE


def test_non_200_status_is_reported(rsps):
    rsps.add(responses.GET, URL, body="nope", status=404)
    resp = HttpClient().get(URL)
    assert resp.ready is True
    assert resp.status_code == 404


def test_added_header_lasts_one_request(rsps):
    rsps.add(responses.GET, URL, body="ok")
    client = HttpClient()
    client.add_header("token", "token")
    client.get(URL)
    client.get(URL)
    assert rsps.calls[0].request.headers["token"] == "token"
    assert "token" not in rsps.calls[1].request.headers


def test_cookies_are_sent(rsps):
    rsps.add(responses.GET, URL, body="ok")
    client = HttpClient()
    client.cookies["sid"] = "token"
    client.get(URL)
    assert rsps.calls[0].request.headers["Cookie"] == "sid=token; "


def test_set_cookie_is_collected(rsps):
    rsps.add(responses.GET, URL, body="ok", headers={"Set-Cookie": "sid=token; Path=/"})
    client = HttpClient()
    client.get(URL)
    assert client.cookies["sid"] == "token"


def test_post_with_body(rsps):
    rsps.add(responses.POST, URL, body="ok")
    resp = HttpClient().post(URL, "a=1&b=2")
    assert resp.ready is True
    assert rsps.calls[0].request.body == b"a=1&b=2"


def test_post_multipart_form(rsps, tmp_path):
    upload = tmp_path / "pic.png"
    upload.write_bytes(b"PNGDATA")
    rsps.add(responses.POST, URL, body="ok")
    client = HttpClient()
    client.add_post_data("type", "group").add_file("img", str(upload))
    resp = client.post(URL)
    assert resp.ready is True
    request = rsps.calls[0].request
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    assert b'name="type"' in request.body
    assert b"group" in request.body
    assert b'filename="pic.png"' in request.body
    assert b"PNGDATA" in request.body


def test_missing_upload_file_is_not_ready(tmp_path):
    client = HttpClient()
    client.add_file("img", str(tmp_path / "missing.png"))
    resp = client.post(URL)
    assert resp.ready is False
    assert resp.error_msg


def test_connection_failure_is_not_ready(rsps):
    resp = HttpClient().get("http://unreachable.example.com/")
    assert resp.ready is False
    assert resp.status_code == 0
    assert resp.error_msg