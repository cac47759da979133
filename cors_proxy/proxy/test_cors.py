from starlette.responses import Response

from cors_proxy.proxy.cors import (
    ALLOW_METHODS,
    EXPOSE_HEADERS,
    apply_cors_headers,
    cors_headers,
)


def test_both_spellings_present():
    headers = cors_headers("https://app.example.com")

    for name in (
        "Access-Control-Allow-Origin",
        "Access-Control-Allow-Methods",
        "Access-Control-Allow-Headers",
        "Access-Control-Allow-Credentials",
        "Access-Control-Max-Age",
        "Access-Control-Expose-Headers",
    ):
        assert headers[name] == headers[name.lower()]

    assert headers["Access-Control-Allow-Origin"] == "https://app.example.com"
    assert headers["access-control-allow-methods"] == "GET,POST,PUT,PATCH,DELETE,OPTIONS"
    assert headers["Access-Control-Allow-Credentials"] == "true"
    assert headers["Access-Control-Max-Age"] == "86400"


def test_missing_origin_falls_back_to_wildcard():
    assert cors_headers(None)["Access-Control-Allow-Origin"] == "*"
    assert cors_headers("")["access-control-allow-origin"] == "*"


def test_apply_overwrites_upstream_values():
    response = Response()
    response.headers["Access-Control-Allow-Origin"] = "https://evil.example.com"
    response.headers.append("access-control-allow-methods", "GET")
    response.headers.append("access-control-allow-methods", "TRACE")

    apply_cors_headers(response.headers, "https://app.example.com")

    assert response.headers.getlist("access-control-allow-origin") == [
        "https://app.example.com"
    ]
    assert response.headers.getlist("access-control-allow-methods") == [ALLOW_METHODS]
    assert response.headers["access-control-expose-headers"] == EXPOSE_HEADERS


def test_apply_on_plain_dict_keeps_both_spellings():
    headers = {}

    apply_cors_headers(headers, None)

    assert headers["Access-Control-Allow-Origin"] == "*"
    assert headers["access-control-allow-origin"] == "*"
    assert len(headers) == 12
