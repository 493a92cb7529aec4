import json
import logging

from subs_wrapper.common import REQUEST_ID, JSONFormatter, RequestIdFilter, browser_headers


def _record(msg, args=()):
    return logging.LogRecord("subs_wrapper.test", logging.INFO, __file__, 1, msg, args, None)


def test_json_formatter_includes_request_id():
    token = REQUEST_ID.set("abc123")
    try:
        line = JSONFormatter().format(_record("found %d", (2,)))
    finally:
        REQUEST_ID.reset(token)
    payload = json.loads(line)
    assert payload["msg"] == "found 2"
    assert payload["rid"] == "abc123"
    assert payload["logger"] == "subs_wrapper.test"


def test_request_id_filter_prefixes_once():
    token = REQUEST_ID.set("r1")
    try:
        record = _record("hello %s", ("world",))
        f = RequestIdFilter()
        f.filter(record)
        f.filter(record)
    finally:
        REQUEST_ID.reset(token)
    assert record.getMessage() == "[rid=r1] hello world"


def test_browser_headers_referer():
    assert "Referer" not in browser_headers("UA")
    assert browser_headers("UA", referer="https://x.test/")["Referer"] == "https://x.test/"
