"""
ActivityPub activity construction and parsing.

Activities are frozen dataclasses, one variant per supported type, all
deriving from :class:`Activity`. The ``create_*`` functions build them with a
caller-supplied id (see :func:`new_activity_id`) and the current time as
``published``; :func:`parse_activity` turns received JSON back into the
matching variant.

Example:

.. code-block:: python

    follow = create_follow_activity(
        new_activity_id(config.root), alice.actor_url, bob.actor_url
    )
    accept = create_accept_activity(
        new_activity_id(config.root), bob.actor_url, follow
    )
    accept.to_json()["object"]["id"] == follow.id
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Union

from socialfed.constants import ACTIVITYPUB_CONTEXT, PUBLIC_COLLECTION
from socialfed.errors import SocialFedError

logger = logging.getLogger(__name__)


class InvalidActivityError(SocialFedError):
    """Raised when activity JSON is malformed or of an unsupported type."""

    pass


class ActivityType(str, Enum):
    """Supported activity types."""

    CREATE = "Create"
    FOLLOW = "Follow"
    ACCEPT = "Accept"
    REJECT = "Reject"
    LIKE = "Like"
    ANNOUNCE = "Announce"
    UNDO = "Undo"
    DELETE = "Delete"


class ObjectType(str, Enum):
    NOTE = "Note"
    PERSON = "Person"


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""
    return (
        datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    )


def new_activity_id(base_url: str) -> str:
    """
    Generate a globally unique activity id under ``base_url``.

    Example:
        >>> new_activity_id("https://social.example")  # doctest: +SKIP
        'https://social.example/activities/3f2a9c0e5b7d4e1f8a6b2c9d0e1f2a3b'
    """
    return f"{base_url.rstrip('/')}/activities/{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Note:
    """A post or comment as a federated object."""

    id: str
    attributed_to: str
    content: str
    published: str | None = None
    to: tuple[str, ...] = (PUBLIC_COLLECTION,)
    cc: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": ObjectType.NOTE.value,
            "attributedTo": self.attributed_to,
            "content": self.content,
            "to": list(self.to),
            "cc": list(self.cc),
        }
        if self.published:
            data["published"] = self.published
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_author: str = "") -> "Note":
        if not isinstance(data.get("id"), str):
            raise InvalidActivityError("Note without an id")
        return cls(
            id=data["id"],
            attributed_to=_as_id(data.get("attributedTo")) or default_author,
            content=data.get("content") or "",
            published=data.get("published"),
            to=_as_tuple(data.get("to")),
            cc=_as_tuple(data.get("cc")),
        )


@dataclass(frozen=True)
class Activity:
    """
    Fields common to every activity.

    Subclasses narrow the type of ``object`` and set ``activity_type``.
    """

    activity_type: ClassVar[ActivityType]

    id: str
    actor: str
    object: Any
    published: str | None

    def to_json(self, include_context: bool = True) -> dict[str, Any]:
        """
        Wire representation of the activity.

        Args:
            include_context: Stamp ``@context``; embedded activities leave it out

        Returns:
            JSON-serializable dict
        """
        data: dict[str, Any] = {}
        if include_context:
            data["@context"] = list(ACTIVITYPUB_CONTEXT)
        data["id"] = self.id
        data["type"] = self.activity_type.value
        data["actor"] = self.actor
        data["object"] = _object_json(self.object)
        if self.published:
            data["published"] = self.published
        data.update(self._addressing())
        return data

    def to_json_string(self) -> str:
        return json.dumps(self.to_json())

    @property
    def object_id(self) -> str:
        """Id of the object, whether it is embedded or a bare URL."""
        return _as_id(_object_json(self.object)) or ""

    def _addressing(self) -> dict[str, Any]:
        return {}

    @classmethod
    def parse_object(cls, raw: Any) -> Any:
        return _require_id(raw)


@dataclass(frozen=True)
class CreateActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.CREATE

    object: Note
    to: tuple[str, ...] = (PUBLIC_COLLECTION,)
    cc: tuple[str, ...] = ()

    def _addressing(self) -> dict[str, Any]:
        return {"to": list(self.to), "cc": list(self.cc)}

    @classmethod
    def parse_object(cls, raw: Any) -> Note:
        if not isinstance(raw, dict) or raw.get("type") != ObjectType.NOTE.value:
            raise InvalidActivityError("Create only supports embedded Note objects")
        return Note.from_dict(raw)


@dataclass(frozen=True)
class FollowActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.FOLLOW

    object: str


@dataclass(frozen=True)
class AcceptActivity(Activity):
    """Answer to a Follow; ``object`` is the full Follow, or its id when a
    remote server only sent that."""

    activity_type: ClassVar[ActivityType] = ActivityType.ACCEPT

    object: FollowActivity | str

    @property
    def follow_id(self) -> str:
        return self.object.id if isinstance(self.object, FollowActivity) else self.object

    @classmethod
    def parse_object(cls, raw: Any) -> FollowActivity | str:
        return _parse_follow_object(raw)


@dataclass(frozen=True)
class RejectActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.REJECT

    object: FollowActivity | str

    @property
    def follow_id(self) -> str:
        return self.object.id if isinstance(self.object, FollowActivity) else self.object

    @classmethod
    def parse_object(cls, raw: Any) -> FollowActivity | str:
        return _parse_follow_object(raw)


@dataclass(frozen=True)
class LikeActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.LIKE

    object: str


@dataclass(frozen=True)
class AnnounceActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.ANNOUNCE

    object: str
    to: tuple[str, ...] = (PUBLIC_COLLECTION,)
    cc: tuple[str, ...] = ()

    def _addressing(self) -> dict[str, Any]:
        return {"to": list(self.to), "cc": list(self.cc)}


@dataclass(frozen=True)
class UndoActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.UNDO

    object: Union["AnyActivity", str]

    @classmethod
    def parse_object(cls, raw: Any) -> Union["AnyActivity", str]:
        if isinstance(raw, dict):
            return parse_activity(raw)
        return _require_id(raw)


@dataclass(frozen=True)
class DeleteActivity(Activity):
    activity_type: ClassVar[ActivityType] = ActivityType.DELETE

    object: Union["AnyActivity", Note, str]

    @classmethod
    def parse_object(cls, raw: Any) -> Union["AnyActivity", Note, str]:
        if isinstance(raw, dict):
            if raw.get("type") == ObjectType.NOTE.value:
                return Note.from_dict(raw)
            if raw.get("type") in _REGISTRY:
                return parse_activity(raw)
        # Tombstones and other objects are referenced by id
        return _require_id(raw)


AnyActivity = (
    CreateActivity
    | FollowActivity
    | AcceptActivity
    | RejectActivity
    | LikeActivity
    | AnnounceActivity
    | UndoActivity
    | DeleteActivity
)

_REGISTRY: dict[str, type[Activity]] = {
    cls.activity_type.value: cls
    for cls in (
        CreateActivity,
        FollowActivity,
        AcceptActivity,
        RejectActivity,
        LikeActivity,
        AnnounceActivity,
        UndoActivity,
        DeleteActivity,
    )
}


def _object_json(obj: Any) -> Any:
    if isinstance(obj, Activity):
        return obj.to_json(include_context=False)
    if isinstance(obj, Note):
        return obj.to_dict()
    return obj


def _as_id(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("id"), str):
        return value["id"]
    return None


def _require_id(raw: Any) -> str:
    object_id = _as_id(raw)
    if not object_id:
        raise InvalidActivityError("Activity object must be a URL or carry an id")
    return object_id


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(v for v in value if isinstance(v, str))


def _parse_follow_object(raw: Any) -> FollowActivity | str:
    if isinstance(raw, dict):
        inner = parse_activity(raw)
        if not isinstance(inner, FollowActivity):
            raise InvalidActivityError(
                f"Expected an embedded Follow, got {inner.activity_type.value}"
            )
        return inner
    return _require_id(raw)


def parse_activity(data: dict[str, Any] | str | bytes) -> AnyActivity:
    """
    Parse activity JSON into its dataclass variant.

    Args:
        data: Decoded JSON dict, or the raw JSON text

    Returns:
        The matching Activity subclass instance

    Raises:
        InvalidActivityError: For invalid JSON, unsupported types or
            missing id/actor/object
    """
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise InvalidActivityError(f"Activity is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidActivityError("Activity must be a JSON object")

    activity_type = data.get("type")
    cls = _REGISTRY.get(activity_type) if isinstance(activity_type, str) else None
    if cls is None:
        raise InvalidActivityError(f"Unsupported activity type: {activity_type}")

    activity_id = data.get("id")
    actor = _as_id(data.get("actor"))
    if not isinstance(activity_id, str) or not activity_id:
        raise InvalidActivityError(f"{activity_type} activity without an id")
    if not actor:
        raise InvalidActivityError(f"{activity_type} activity {activity_id} without an actor")
    if "object" not in data:
        raise InvalidActivityError(f"{activity_type} activity {activity_id} without an object")

    kwargs: dict[str, Any] = {
        "id": activity_id,
        "actor": actor,
        "object": cls.parse_object(data["object"]),
        "published": data.get("published"),
    }
    if cls in (CreateActivity, AnnounceActivity):
        if "to" in data:
            kwargs["to"] = _as_tuple(data["to"])
        if "cc" in data:
            kwargs["cc"] = _as_tuple(data["cc"])
    return cls(**kwargs)  # type: ignore[return-value]


def create_note_object(
    id: str,
    content: str,
    attributed_to: str,
    to: list[str] | None = None,
    cc: list[str] | None = None,
) -> Note:
    return Note(
        id=id,
        attributed_to=attributed_to,
        content=content,
        published=utc_timestamp(),
        to=tuple(to) if to is not None else (PUBLIC_COLLECTION,),
        cc=tuple(cc) if cc is not None else (),
    )


def create_create_activity(
    id: str,
    actor_url: str,
    note_object: Note,
    to: list[str] | None = None,
    cc: list[str] | None = None,
) -> CreateActivity:
    """Wrap a Note in a Create, addressed publicly unless ``to`` is given."""
    return CreateActivity(
        id=id,
        actor=actor_url,
        object=note_object,
        published=utc_timestamp(),
        to=tuple(to) if to is not None else (PUBLIC_COLLECTION,),
        cc=tuple(cc) if cc is not None else (),
    )


def create_follow_activity(
    id: str, actor_url: str, target_actor_url: str
) -> FollowActivity:
    return FollowActivity(
        id=id, actor=actor_url, object=target_actor_url, published=utc_timestamp()
    )


def create_accept_activity(
    id: str, actor_url: str, original_follow: FollowActivity
) -> AcceptActivity:
    """Accept a Follow; the whole Follow is embedded so the receiver can match it."""
    return AcceptActivity(
        id=id, actor=actor_url, object=original_follow, published=utc_timestamp()
    )


def create_reject_activity(
    id: str, actor_url: str, original_follow: FollowActivity
) -> RejectActivity:
    return RejectActivity(
        id=id, actor=actor_url, object=original_follow, published=utc_timestamp()
    )


def create_like_activity(
    id: str, actor_url: str, target_object_url: str
) -> LikeActivity:
    return LikeActivity(
        id=id, actor=actor_url, object=target_object_url, published=utc_timestamp()
    )


def create_announce_activity(
    id: str,
    actor_url: str,
    target_object_url: str,
    to: list[str] | None = None,
    cc: list[str] | None = None,
) -> AnnounceActivity:
    return AnnounceActivity(
        id=id,
        actor=actor_url,
        object=target_object_url,
        published=utc_timestamp(),
        to=tuple(to) if to is not None else (PUBLIC_COLLECTION,),
        cc=tuple(cc) if cc is not None else (),
    )


def create_undo_activity(
    id: str, actor_url: str, original_activity: AnyActivity | str
) -> UndoActivity:
    """
    Undo an earlier activity.

    Args:
        original_activity: The activity to undo, or just its id when the full
            activity is no longer available
    """
    return UndoActivity(
        id=id, actor=actor_url, object=original_activity, published=utc_timestamp()
    )


def create_delete_activity(
    id: str, actor_url: str, deleted_object_or_activity: AnyActivity | Note | str
) -> DeleteActivity:
    return DeleteActivity(
        id=id,
        actor=actor_url,
        object=deleted_object_or_activity,
        published=utc_timestamp(),
    )
