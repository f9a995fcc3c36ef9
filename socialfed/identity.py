"""
Actor identities: RSA key pairs, actor records and Person documents.

Every local actor gets exactly one key pair, generated before the actor row
is written and never regenerated. The private key stays in storage; nothing
this module renders for the outside world contains it.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from socialfed.constants import (
    ACTIVITYPUB_CONTEXT,
    HANDLE_PATTERN,
    MIN_RSA_KEY_SIZE,
    RSA_PUBLIC_EXPONENT,
)
from socialfed.db.protocols import DuplicateRecordError
from socialfed.db.utils import parse_iso, utcnow
from socialfed.errors import SocialFedError
from socialfed.hooks import HookRegistry, LifecycleEvent, get_hook_registry

if TYPE_CHECKING:
    from socialfed.config import Config
    from socialfed.db import Store

logger = logging.getLogger(__name__)

_HANDLE_RE = re.compile(HANDLE_PATTERN)


class IdentityGenerationError(SocialFedError):
    """Raised when a key pair cannot be generated."""

    pass


class InvalidHandleError(SocialFedError):
    pass


class DuplicateActorError(SocialFedError):
    """Raised when the requested handle is already taken."""

    def __init__(self, handle: str) -> None:
        super().__init__(f"Handle already taken: {handle}")
        self.handle = handle


@dataclass(frozen=True)
class KeyPair:
    """PEM encoded RSA key pair. The private key is left out of repr()."""

    public_key_pem: str
    private_key_pem: str = field(repr=False)


@dataclass
class Actor:
    id: str
    handle: str
    actor_url: str
    inbox_url: str
    outbox_url: str
    followers_url: str
    following_url: str
    key_pair: KeyPair
    display_name: str | None = None
    summary: str | None = None
    avatar_url: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def key_id(self) -> str:
        return f"{self.actor_url}#main-key"

    def to_dict(self, include_private_key: bool = False) -> dict[str, Any]:
        """
        Flat dict representation.

        Args:
            include_private_key: Only the storage layer asks for the private key
        """
        data = {
            "id": self.id,
            "handle": self.handle,
            "display_name": self.display_name,
            "summary": self.summary,
            "avatar_url": self.avatar_url,
            "actor_url": self.actor_url,
            "inbox_url": self.inbox_url,
            "outbox_url": self.outbox_url,
            "followers_url": self.followers_url,
            "following_url": self.following_url,
            "public_key_pem": self.key_pair.public_key_pem,
            "key_id": self.key_id,
            "created_at": self.created_at,
        }
        if include_private_key:
            data["private_key_pem"] = self.key_pair.private_key_pem
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Actor":
        return cls(
            id=data["id"],
            handle=data["handle"],
            actor_url=data["actor_url"],
            inbox_url=data["inbox_url"],
            outbox_url=data["outbox_url"],
            followers_url=data["followers_url"],
            following_url=data["following_url"],
            key_pair=KeyPair(
                public_key_pem=data["public_key_pem"],
                private_key_pem=data.get("private_key_pem", ""),
            ),
            display_name=data.get("display_name"),
            summary=data.get("summary"),
            avatar_url=data.get("avatar_url"),
            created_at=parse_iso(data.get("created_at")) or utcnow(),
        )


def generate_identity(key_size: int = MIN_RSA_KEY_SIZE) -> KeyPair:
    """
    Generate a fresh RSA key pair.

    Args:
        key_size: Modulus size in bits, at least 2048

    Returns:
        KeyPair with a PKCS8 private key and a SubjectPublicKeyInfo public key

    Raises:
        IdentityGenerationError: If the size is too small or generation fails
    """
    if key_size < MIN_RSA_KEY_SIZE:
        raise IdentityGenerationError(
            f"RSA keys must be at least {MIN_RSA_KEY_SIZE} bits, got {key_size}"
        )
    try:
        private_key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=key_size,
        )
        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("ascii")
        public_pem = (
            private_key.public_key()
            .public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            .decode("ascii")
        )
    except Exception as e:
        logger.error(f"RSA key generation failed: {e}")
        raise IdentityGenerationError(f"Key generation failed: {e}") from e
    return KeyPair(public_key_pem=public_pem, private_key_pem=private_pem)


def build_actor_document(actor: Actor) -> dict[str, Any]:
    """Render the ActivityPub Person document for an actor."""
    document: dict[str, Any] = {
        "@context": list(ACTIVITYPUB_CONTEXT),
        "id": actor.actor_url,
        "type": "Person",
        "preferredUsername": actor.handle,
        "name": actor.display_name or actor.handle,
        "summary": actor.summary or "",
    }
    if actor.avatar_url:
        document["icon"] = {"type": "Image", "url": actor.avatar_url}
    document.update(
        {
            "inbox": actor.inbox_url,
            "outbox": actor.outbox_url,
            "followers": actor.followers_url,
            "following": actor.following_url,
            "publicKey": {
                "id": actor.key_id,
                "owner": actor.actor_url,
                "publicKeyPem": actor.key_pair.public_key_pem,
            },
        }
    )
    return document


def is_valid_handle(handle: str) -> bool:
    return bool(handle) and _HANDLE_RE.fullmatch(handle) is not None


class ActorIdentityManager:
    """
    Creates and looks up local actors.

    Args:
        store: Storage bundle from socialfed.db.get_store()
        config: Application config; provides the base URL and key size
        hooks: Hook registry, defaults to the global one
    """

    def __init__(
        self, store: "Store", config: "Config", hooks: HookRegistry | None = None
    ) -> None:
        self.store = store
        self.config = config
        self.hooks = hooks if hooks is not None else get_hook_registry()

    def create_actor(
        self,
        handle: str,
        display_name: str | None = None,
        summary: str | None = None,
        avatar_url: str | None = None,
    ) -> Actor:
        """
        Create a local actor with a new key pair.

        Raises:
            InvalidHandleError: If the handle is not made of [A-Za-z0-9_]
            DuplicateActorError: If the handle is taken
            IdentityGenerationError: If key generation fails; nothing is stored
        """
        if not is_valid_handle(handle):
            raise InvalidHandleError(f"Invalid handle: {handle!r}")
        if self.store.actors.get_by_handle(handle) is not None:
            raise DuplicateActorError(handle)

        key_pair = generate_identity(self.config.key_size)

        actor_url = self.config.actor_url(handle)
        actor = Actor(
            id=self.config.new_uuid(),
            handle=handle,
            actor_url=actor_url,
            inbox_url=f"{actor_url}/inbox",
            outbox_url=f"{actor_url}/outbox",
            followers_url=f"{actor_url}/followers",
            following_url=f"{actor_url}/following",
            key_pair=key_pair,
            display_name=display_name,
            summary=summary,
            avatar_url=avatar_url,
        )
        try:
            self.store.actors.create(actor.to_dict(include_private_key=True))
        except DuplicateRecordError as e:
            # Lost a race with a concurrent signup for the same handle
            raise DuplicateActorError(handle) from e

        logger.info(f"Created actor {actor.id} with handle {handle}")
        self.hooks.execute_lifecycle_hooks(LifecycleEvent.ACTOR_CREATED.value, actor)
        return actor

    def get_actor(self, actor_id: str) -> Actor | None:
        row = self.store.actors.get(actor_id)
        return Actor.from_dict(row) if row else None

    def get_actor_by_handle(self, handle: str) -> Actor | None:
        row = self.store.actors.get_by_handle(handle)
        return Actor.from_dict(row) if row else None

    def get_actor_by_url(self, actor_url: str) -> Actor | None:
        row = self.store.actors.get_by_url(actor_url)
        return Actor.from_dict(row) if row else None

    def resolve_handles(self, handles: list[str]) -> dict[str, str]:
        """Map handles to actor ids, leaving out handles that do not exist."""
        resolved: dict[str, str] = {}
        for handle in handles:
            if handle in resolved:
                continue
            row = self.store.actors.get_by_handle(handle)
            if row:
                resolved[handle] = row["id"]
        return resolved

    def actor_document(self, actor_id: str) -> dict[str, Any] | None:
        actor = self.get_actor(actor_id)
        return build_actor_document(actor) if actor else None
