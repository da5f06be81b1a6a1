"""
HTTP helpers shared by the controller layer.

- Standard reason phrases keyed by status code
- Request predicates used by the built-in filters
"""

from typing import Any, Optional


HTTP_REASONS = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    118: "Connection timed out",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-Status",
    210: "Content Different",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    307: "Temporary Redirect",
    310: "Too many Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Time-out",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request-URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested range unsatisfiable",
    417: "Expectation failed",
    418: "I'm a teapot",
    422: "Unprocessable entity",
    423: "Locked",
    424: "Method failure",
    425: "Unordered Collection",
    426: "Upgrade Required",
    449: "Retry With",
    450: "Blocked by Windows Parental Controls",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway or Proxy Error",
    503: "Service Unavailable",
    504: "Gateway Time-out",
    505: "HTTP Version not supported",
    507: "Insufficient storage",
    509: "Bandwidth Limit Exceeded",
}

UNKNOWN_ERROR = "Unknown error"


def reason_phrase(status: int) -> str:
    """Reason phrase for ``status``, or "Unknown error"."""
    return HTTP_REASONS.get(status, UNKNOWN_ERROR)


def _header(request: Any, name: str) -> Optional[str]:
    headers = getattr(request, "headers", None)
    if headers is None:
        return None
    value = headers.get(name)
    if value is None and isinstance(headers, dict):
        # Plain dicts are not case-insensitive
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
    return value


def is_post_request(request: Any) -> bool:
    """Whether ``request`` is an HTTP POST."""
    if request is None:
        return False
    explicit = getattr(request, "is_post", None)
    if isinstance(explicit, bool):
        return explicit
    return str(getattr(request, "method", "")).upper() == "POST"


def is_ajax_request(request: Any) -> bool:
    """Whether ``request`` was sent by XMLHttpRequest (X-Requested-With)."""
    if request is None:
        return False
    explicit = getattr(request, "is_ajax", None)
    if isinstance(explicit, bool):
        return explicit
    return (_header(request, "x-requested-with") or "").lower() == "xmlhttprequest"


def client_ip(request: Any) -> Optional[str]:
    """Client address of ``request`` if the transport exposes one."""
    if request is None:
        return None
    ip = getattr(request, "client_ip", None)
    if callable(ip):
        ip = ip()
    if ip:
        return ip
    client = getattr(request, "client", None)
    if isinstance(client, (tuple, list)) and client:
        return client[0]
    return None
