from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

invoices_written_total = Counter(
    "invoices_written_total",
    "Invoices created, updated or deleted",
    ["operation"],
)

invoice_number_collisions_total = Counter(
    "invoice_number_collisions_total",
    "Generated invoice numbers that hit the per-organization unique constraint",
)

auth_logins_total = Counter(
    "auth_logins_total",
    "Login attempts by outcome",
    ["outcome"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    return _UUID_RE.sub("{id}", path)


def _with_mount_prefix(request_path: str, route_path: str) -> str:
    # Routes of an included router may report their path without the router prefix.
    request_parts = request_path.rstrip("/").split("/")
    route_parts = route_path.rstrip("/").split("/")
    missing = len(request_parts) - len(route_parts)
    if missing <= 0:
        return route_path
    return _sanitize_path("/".join(request_parts[: missing + 1])) + route_path


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path_format", None) or getattr(route, "path", None)
    if isinstance(route_path, str) and route_path:
        return _PATH_PARAM_RE.sub("{id}", _with_mount_prefix(request.url.path, route_path))
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_invoice_write(operation: str) -> None:
    invoices_written_total.labels(operation=operation).inc()


def observe_invoice_number_collision() -> None:
    invoice_number_collisions_total.inc()


def observe_login(outcome: str) -> None:
    auth_logins_total.labels(outcome=outcome).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
