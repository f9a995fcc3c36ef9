"""
Runtime configuration for socialfed.

Values are passed as keyword arguments; anything left out falls back to an
environment variable and then to a default.
"""

import os
import uuid
from typing import Any


class Config:
    """Configuration shared by the stores and services.

    Example usage:

    .. code-block:: python

        config = Config(
            database="dynamodb",
            fqdn="social.example.com",
            vapid_public_key="...",
            vapid_private_key="...",
        )
        store = get_store(config)
    """

    def __init__(
        self,
        database: str | None = None,
        fqdn: str | None = None,
        proto: str | None = None,
        vapid_public_key: str | None = None,
        vapid_private_key: str | None = None,
        vapid_subject: str | None = None,
        key_size: int = 2048,
        auto_accept_follows: bool = True,
        push_max_concurrent: int = 10,
        push_ttl: int = 0,
        push_timeout: float = 10.0,
        background_workers: int = 4,
        background_max_pending: int = 1000,
        log_level: str | None = None,
        **kwargs: Any,
    ) -> None:
        self.database = database or os.getenv("DATABASE_BACKEND", "memory")
        self.fqdn = (
            fqdn
            or os.getenv("APP_HOST_FQDN")
            or os.getenv("DOMAIN_NAME")
            or "localhost"
        )
        self.proto = proto or os.getenv("APP_HOST_PROTOCOL", "https://")
        self.vapid_public_key = (
            vapid_public_key
            if vapid_public_key is not None
            else os.getenv("VAPID_PUBLIC_KEY", "")
        )
        self.vapid_private_key = (
            vapid_private_key
            if vapid_private_key is not None
            else os.getenv("VAPID_PRIVATE_KEY", "")
        )
        self.vapid_subject = (
            vapid_subject
            or os.getenv("VAPID_SUBJECT")
            or f"mailto:noreply@{self.fqdn.split(':')[0]}"
        )
        self.key_size = key_size
        self.auto_accept_follows = auto_accept_follows
        self.push_max_concurrent = push_max_concurrent
        self.push_ttl = push_ttl
        self.push_timeout = push_timeout
        self.background_workers = background_workers
        self.background_max_pending = background_max_pending
        self.log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
        # Unknown options are kept so applications can hang their own settings here
        for key, value in kwargs.items():
            setattr(self, key, value)

    @property
    def root(self) -> str:
        """Base URL without trailing slash, e.g. ``https://social.example.com``."""
        return f"{self.proto}{self.fqdn}".rstrip("/")

    @property
    def push_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    def actor_url(self, handle: str) -> str:
        return f"{self.root}/users/{handle}"

    @staticmethod
    def new_uuid() -> str:
        """Random 128-bit identifier as 32 hex characters."""
        return uuid.uuid4().hex
