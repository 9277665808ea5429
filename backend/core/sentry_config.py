"""
Sentry SDK configuration.

Feedback carries submitter emails and SDK tokens travel in headers, so
events are scrubbed before they leave the process.
"""

import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.loguru import LoguruIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.types import Event, Hint

SENSITIVE_HEADERS = ("Authorization", "authorization", "X-SDK-Token", "x-sdk-token")
HEALTH_PATHS = ("/health", "/api/health")


def _before_send(event: Event, hint: Hint) -> Event | None:
    """
    Remove PII and credentials from an error event.

    Only the user id is kept for traceability; emails, cookies and auth
    headers are dropped or filtered.
    """
    user = event.get("user")
    if user:
        user.pop("email", None)
        user.pop("username", None)
        if "ip_address" in user:
            user["ip_address"] = "{{auto}}"

    request = event.get("request")
    if request and isinstance(request, dict):
        request.pop("cookies", None)
        headers = request.get("headers")
        if isinstance(headers, dict):
            for name in SENSITIVE_HEADERS:
                if name in headers:
                    headers[name] = "[Filtered]"
        data = request.get("data")
        if isinstance(data, dict):
            for key in ("email", "submitter_email"):
                if key in data:
                    data[key] = "[Filtered]"

    return event


def _before_send_transaction(event: Event, hint: Hint) -> Event | None:
    """Drop health-check transactions."""
    transaction_name = event.get("transaction", "")
    if transaction_name in HEALTH_PATHS or transaction_name in {
        f"GET {path}" for path in HEALTH_PATHS
    }:
        return None
    return event


def _traces_sampler(sampling_context: dict[str, Any]) -> float:
    """
    Per-endpoint trace sampling.

    SDK endpoints are high volume and sampled lightly; membership and merge
    operations are the security-relevant paths and sampled more.
    """
    if sampling_context.get("parent_sampled") is True:
        return 1.0

    asgi_scope = sampling_context.get("asgi_scope", {})
    path = asgi_scope.get("path", "")

    if path in HEALTH_PATHS:
        return 0.0
    if path.startswith("/api/sdk"):
        return 0.05
    if "/members" in path or path.endswith("/merge"):
        return 0.5
    return 0.2


def init_sentry() -> None:
    """
    Initialize Sentry before the FastAPI app is created.

    Disabled when SENTRY_DSN is not set.
    """
    dsn = os.getenv("SENTRY_DSN")
    if not dsn:
        return

    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("ENVIRONMENT", "development"),
        release=os.getenv("SENTRY_RELEASE", "unknown"),
        send_default_pii=False,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoguruIntegration(),
        ],
        traces_sampler=_traces_sampler,
        sample_rate=1.0,
        before_send=_before_send,
        before_send_transaction=_before_send_transaction,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        ignore_errors=[KeyboardInterrupt, SystemExit],
    )
