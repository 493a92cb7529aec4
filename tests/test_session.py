from subs_wrapper.session import SessionToken, origin_of


def test_origin_normalizes_default_ports():
    assert origin_of("https://WWW.podnapisi.net/subtitles/1/") == "https://www.podnapisi.net:443"
    assert origin_of("http://example.com:8080/x") == "http://example.com:8080"
    assert origin_of("not a url") == ""


def test_from_set_cookie_drops_attributes():
    token = SessionToken.from_set_cookie(
        [
            "PHPSESSID=abc123; Path=/; HttpOnly",
            "lang=sl; Expires=Wed, 21 Oct 2026 07:28:00 GMT; Secure",
        ],
        "https://www.podnapisi.net/subtitles/1/",
    )
    assert token.header_value() == "PHPSESSID=abc123; lang=sl"
    assert "Path" not in str(token)


def test_from_set_cookie_later_value_wins():
    token = SessionToken.from_set_cookie(["a=1", "b=2", "a=3; Path=/"], "https://x.test/")
    assert token.header_value() == "a=3; b=2"


def test_from_set_cookie_without_cookies():
    assert SessionToken.from_set_cookie([], "https://x.test/") is None
    assert SessionToken.from_set_cookie(["garbage"], "https://x.test/") is None


def test_parse_round_trips_header_value():
    original = "sid=a%2Fb==; csrftoken=xyz"
    token = SessionToken.parse(original, "https://www.podnapisi.net/subtitles/5/")
    assert token.header_value() == original


def test_applies_only_to_same_origin():
    token = SessionToken.parse("sid=1", "https://www.podnapisi.net/subtitles/5/")
    assert token.applies_to("https://www.podnapisi.net/subtitles/5/download")
    assert not token.applies_to("http://www.podnapisi.net/subtitles/5/download")
    assert not token.applies_to("https://cdn.podnapisi.net/file.zip")
    assert not token.applies_to("https://evil.test/")
