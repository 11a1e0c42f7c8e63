"""Credential providers.

A token provider is any zero-argument callable that returns the current
credential string, or None when no credential is available. Obtaining and
refreshing credentials is the provider's job; cladeview only reads them.
"""

import os
from typing import Callable

TokenProvider = Callable[[], str | None]


class StaticTokenProvider:
    """Always return the same token."""

    def __init__(self, token: str | None):
        self.token = token

    def __call__(self) -> str | None:
        return self.token or None


class EnvTokenProvider:
    """Read the token from an environment variable on every call."""

    def __init__(self, variable: str = "CLADEVIEW_TOKEN"):
        self.variable = variable

    def __call__(self) -> str | None:
        return os.environ.get(self.variable) or None


def no_token() -> str | None:
    return None
