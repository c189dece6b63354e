"""Security headers attached to every admitted response."""

from starlette.responses import Response

SECURITY_HEADERS: dict[str, str] = {
    "X-DNS-Prefetch-Control": "on",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}

STRIPPED_HEADERS: frozenset[str] = frozenset({"x-powered-by"})


def apply_security_headers(response: Response) -> Response:
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    for name in STRIPPED_HEADERS:
        if name in response.headers:
            del response.headers[name]
    return response
