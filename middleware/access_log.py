# middleware/access_log.py
"""
Access logging in Apache combined log format.

Lines go to an append-only file through a dedicated, non-propagating logger
so they never mix with the application log.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from flask import Flask, request

ACCESS_LOGGER_NAME = 'shop.access'


def _or_dash(value):
    return value if value else '-'


def format_combined(req, response, now=None) -> str:
    """
    Format one request/response pair as a combined log line::

        127.0.0.1 - - [10/Oct/2000:13:55:36 +0000] "GET / HTTP/1.1" 200 2326 "-" "curl/8.0"
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime('%d/%b/%Y:%H:%M:%S +0000')

    target = req.full_path if req.query_string else req.path
    request_line = f"{req.method} {target} {req.environ.get('SERVER_PROTOCOL', 'HTTP/1.1')}"

    auth = req.authorization
    user = auth.username if auth is not None and auth.username else None

    length = response.headers.get('Content-Length')

    return (
        f'{_or_dash(req.remote_addr)} - {_or_dash(user)} [{stamp}] '
        f'"{request_line}" {response.status_code} {_or_dash(length)} '
        f'"{_or_dash(req.referrer)}" "{_or_dash(req.user_agent.string)}"'
    )


def init_access_log(app: Flask) -> logging.Logger:
    """Attach the access log file handler and the per-request hook"""
    log_path = Path(app.config['ACCESS_LOG_PATH'])
    log_path.parent.mkdir(parents=True, exist_ok=True)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.setLevel(logging.INFO)
    access_logger.propagate = False

    # the most recently created app owns the access log file
    for old in list(access_logger.handlers):
        access_logger.removeHandler(old)
        old.close()

    handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
    handler.setFormatter(logging.Formatter('%(message)s'))
    access_logger.addHandler(handler)

    @app.after_request
    def log_access(response):
        # registered first, so it runs after every other after_request hook
        access_logger.info(format_combined(request, response))
        return response

    app.logger.info(f"Access log writing to {log_path}")
    return access_logger
