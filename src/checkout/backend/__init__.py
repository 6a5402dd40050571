"""Backend adapter factory.

``build_backend`` reads the adapter choice and credentials once and returns a
new, explicitly owned adapter. Callers inject the result into the
orchestrator; there is no process-wide client.
"""

import os

from checkout.backend.fake_adapter import FakeBackend, MemoryLocalStore
from checkout.backend.http_adapter import HttpBackend
from checkout.backend.port import CheckoutBackend, LocalStore


def backend_settings(custom: dict | None = None) -> dict:
    """Merge the domain's ``[custom]`` table with environment overrides."""
    custom = custom or {}
    return {
        "adapter": os.environ.get("CHECKOUT_BACKEND", custom.get("CHECKOUT_BACKEND", "fake")),
        "base_url": os.environ.get("CHECKOUT_API_URL", custom.get("CHECKOUT_API_URL", "")),
        "api_token": os.environ.get("CHECKOUT_API_TOKEN", custom.get("CHECKOUT_API_TOKEN")),
        "timeout": float(os.environ.get("CHECKOUT_API_TIMEOUT", custom.get("CHECKOUT_API_TIMEOUT", 10.0))),
    }


def build_backend(custom: dict | None = None) -> CheckoutBackend:
    """Return a new backend adapter configured from settings."""
    settings = backend_settings(custom)
    adapter = settings["adapter"]
    if adapter == "fake":
        return FakeBackend()
    if adapter == "http":
        if not settings["base_url"]:
            raise ValueError("CHECKOUT_API_URL must be set for the http backend")
        return HttpBackend(
            base_url=settings["base_url"],
            api_token=settings["api_token"],
            timeout=settings["timeout"],
        )
    raise ValueError(f"Unknown checkout backend: {adapter}")


__all__ = [
    "CheckoutBackend",
    "FakeBackend",
    "HttpBackend",
    "LocalStore",
    "MemoryLocalStore",
    "backend_settings",
    "build_backend",
]
