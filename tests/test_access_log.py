from datetime import datetime, timezone
from pathlib import Path

from flask import Response, request

from middleware.access_log import format_combined

FIXED = datetime(2000, 10, 10, 13, 55, 36, tzinfo=timezone.utc)


def test_format_combined_line(app):
    headers = {"Referer": "http://shop.test/products", "User-Agent": "curl/8.0"}
    with app.test_request_context("/products?page=2", headers=headers):
        response = Response("hello")
        line = format_combined(request, response, FIXED)

    assert line == (
        '127.0.0.1 - - [10/Oct/2000:13:55:36 +0000] "GET /products?page=2 HTTP/1.1" '
        '200 5 "http://shop.test/products" "curl/8.0"'
    )


def test_format_combined_uses_dashes_for_missing_values(app):
    with app.test_request_context("/", method="POST"):
        response = Response(status=302)
        response.headers.pop("Content-Length", None)
        line = format_combined(request, response, FIXED)

    assert line == '127.0.0.1 - - [10/Oct/2000:13:55:36 +0000] "POST / HTTP/1.1" 302 - "-" "-"'


def test_requests_are_appended_to_access_log(app, client):
    log_path = Path(app.config["ACCESS_LOG_PATH"])
    log_path.write_text("previous line\n")

    client.get("/")
    client.get("/no/such/page")

    lines = log_path.read_text().splitlines()
    assert lines[0] == "previous line"
    assert len(lines) == 3
    assert '"GET / HTTP/1.1" 200' in lines[1]
    assert '"GET /no/such/page HTTP/1.1" 404' in lines[2]
