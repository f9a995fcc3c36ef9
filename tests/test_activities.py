"""Tests for activity construction and parsing."""

import json
import re
from concurrent.futures import ThreadPoolExecutor

import pytest

from socialfed.activities import (
    AcceptActivity,
    ActivityType,
    CreateActivity,
    DeleteActivity,
    FollowActivity,
    InvalidActivityError,
    LikeActivity,
    Note,
    RejectActivity,
    UndoActivity,
    create_accept_activity,
    create_announce_activity,
    create_create_activity,
    create_delete_activity,
    create_follow_activity,
    create_like_activity,
    create_note_object,
    create_reject_activity,
    create_undo_activity,
    new_activity_id,
    parse_activity,
    utc_timestamp,
)
from socialfed.constants import PUBLIC_COLLECTION

ALICE = "https://social.example/users/alice"
BOB = "https://social.example/users/bob"
REMOTE = "https://remote.example/users/carol"
CONTEXT = ["https://www.w3.org/ns/activitystreams", "https://w3id.org/security/v1"]


def _id(n: int) -> str:
    return f"https://social.example/activities/{n}"


class TestIds:
    def test_new_activity_id_is_unique_under_base(self) -> None:
        first = new_activity_id("https://social.example/")
        second = new_activity_id("https://social.example")

        assert first != second
        assert re.fullmatch(r"https://social\.example/activities/[0-9a-f]{32}", first)

    def test_new_activity_ids_unique_across_threads(self) -> None:
        with ThreadPoolExecutor(max_workers=8) as executor:
            ids = list(
                executor.map(lambda _: new_activity_id("https://social.example"), range(2000))
            )

        assert len(set(ids)) == 2000

    def test_timestamp_format(self) -> None:
        assert re.fullmatch(
            r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp()
        )


class TestConstructors:
    """Tests for the create_* constructors."""

    def test_note_object(self) -> None:
        note = create_note_object("https://social.example/notes/1", "hi", ALICE)

        data = note.to_dict()
        assert data["type"] == "Note"
        assert data["attributedTo"] == ALICE
        assert data["content"] == "hi"
        assert data["to"] == [PUBLIC_COLLECTION]
        assert data["published"].endswith("Z")

    def test_create_activity(self) -> None:
        note = create_note_object("https://social.example/notes/1", "hi", ALICE)
        activity = create_create_activity(_id(1), ALICE, note)

        data = activity.to_json()
        assert data["@context"] == CONTEXT
        assert data["type"] == "Create"
        assert data["actor"] == ALICE
        assert data["object"]["id"] == "https://social.example/notes/1"
        assert "@context" not in data["object"]
        assert data["to"] == [PUBLIC_COLLECTION]
        assert data["cc"] == []

    def test_follow_activity(self) -> None:
        follow = create_follow_activity(_id(1), ALICE, BOB)

        data = follow.to_json()
        assert data["type"] == "Follow"
        assert data["object"] == BOB
        assert follow.object_id == BOB

    def test_accept_embeds_follow(self) -> None:
        follow = create_follow_activity(_id(1), ALICE, BOB)
        accept = create_accept_activity(_id(2), BOB, follow)

        data = accept.to_json()
        assert data["type"] == "Accept"
        assert data["actor"] == BOB
        assert data["object"]["id"] == follow.id
        assert data["object"]["type"] == "Follow"
        assert data["object"]["actor"] == ALICE
        assert "@context" not in data["object"]
        assert accept.follow_id == follow.id

    def test_reject_embeds_follow(self) -> None:
        follow = create_follow_activity(_id(1), ALICE, BOB)
        reject = create_reject_activity(_id(2), BOB, follow)

        assert reject.to_json()["object"]["id"] == follow.id
        assert reject.follow_id == follow.id

    def test_like_activity(self) -> None:
        like = create_like_activity(_id(1), ALICE, "https://social.example/notes/9")
        assert like.to_json()["object"] == "https://social.example/notes/9"

    def test_announce_addressing(self) -> None:
        announce = create_announce_activity(
            _id(1), ALICE, "https://social.example/notes/9", cc=[f"{ALICE}/followers"]
        )

        data = announce.to_json()
        assert data["type"] == "Announce"
        assert data["to"] == [PUBLIC_COLLECTION]
        assert data["cc"] == [f"{ALICE}/followers"]

    def test_undo_embeds_original(self) -> None:
        like = create_like_activity(_id(1), ALICE, "https://social.example/notes/9")
        undo = create_undo_activity(_id(2), ALICE, like)

        data = undo.to_json()
        assert data["object"]["type"] == "Like"
        assert data["object"]["id"] == like.id
        assert undo.object_id == like.id

    def test_undo_by_id(self) -> None:
        undo = create_undo_activity(_id(2), ALICE, _id(1))
        assert undo.to_json()["object"] == _id(1)

    def test_delete_note(self) -> None:
        note = create_note_object("https://social.example/notes/1", "bye", ALICE)
        delete = create_delete_activity(_id(3), ALICE, note)

        assert delete.to_json()["object"]["type"] == "Note"
        assert delete.object_id == "https://social.example/notes/1"

    def test_to_json_string_is_json(self) -> None:
        follow = create_follow_activity(_id(1), ALICE, BOB)
        assert json.loads(follow.to_json_string())["id"] == _id(1)

    def test_activity_type_values(self) -> None:
        assert {t.value for t in ActivityType} == {
            "Create",
            "Follow",
            "Accept",
            "Reject",
            "Like",
            "Announce",
            "Undo",
            "Delete",
        }


class TestParseActivity:
    """Tests for parse_activity()."""

    def test_parses_own_output(self) -> None:
        follow = create_follow_activity(_id(1), ALICE, BOB)
        accept = create_accept_activity(_id(2), BOB, follow)

        parsed = parse_activity(accept.to_json())

        assert isinstance(parsed, AcceptActivity)
        assert isinstance(parsed.object, FollowActivity)
        assert parsed.object.id == follow.id
        assert parsed.object.actor == ALICE

    def test_parses_json_text(self) -> None:
        like = create_like_activity(_id(1), ALICE, "https://social.example/notes/9")

        parsed = parse_activity(like.to_json_string())

        assert isinstance(parsed, LikeActivity)
        assert parsed.object == "https://social.example/notes/9"

    def test_accept_with_follow_id_only(self) -> None:
        parsed = parse_activity(
            {"id": _id(2), "type": "Accept", "actor": BOB, "object": _id(1)}
        )
        assert isinstance(parsed, AcceptActivity)
        assert parsed.follow_id == _id(1)

    def test_reject_with_embedded_follow(self) -> None:
        parsed = parse_activity(
            {
                "id": _id(2),
                "type": "Reject",
                "actor": BOB,
                "object": {"id": _id(1), "type": "Follow", "actor": ALICE, "object": BOB},
            }
        )
        assert isinstance(parsed, RejectActivity)
        assert parsed.follow_id == _id(1)

    def test_accept_of_non_follow_rejected(self) -> None:
        with pytest.raises(InvalidActivityError):
            parse_activity(
                {
                    "id": _id(2),
                    "type": "Accept",
                    "actor": BOB,
                    "object": {"id": _id(1), "type": "Like", "actor": ALICE, "object": BOB},
                }
            )

    def test_create_note(self) -> None:
        parsed = parse_activity(
            {
                "id": _id(1),
                "type": "Create",
                "actor": REMOTE,
                "object": {
                    "id": "https://remote.example/notes/1",
                    "type": "Note",
                    "attributedTo": REMOTE,
                    "content": "hello @alice",
                    "to": PUBLIC_COLLECTION,
                },
                "to": [PUBLIC_COLLECTION],
            }
        )

        assert isinstance(parsed, CreateActivity)
        assert isinstance(parsed.object, Note)
        assert parsed.object.content == "hello @alice"
        assert parsed.object.to == (PUBLIC_COLLECTION,)

    def test_actor_object_form(self) -> None:
        """Actors may be sent as embedded objects with an id."""
        parsed = parse_activity(
            {"id": _id(1), "type": "Follow", "actor": {"id": REMOTE}, "object": ALICE}
        )
        assert parsed.actor == REMOTE

    def test_undo_follow(self) -> None:
        follow = create_follow_activity(_id(1), REMOTE, ALICE)
        undo = create_undo_activity(_id(2), REMOTE, follow)

        parsed = parse_activity(undo.to_json())

        assert isinstance(parsed, UndoActivity)
        assert isinstance(parsed.object, FollowActivity)
        assert parsed.object.object == ALICE

    def test_delete_actor(self) -> None:
        parsed = parse_activity(
            {"id": _id(1), "type": "Delete", "actor": REMOTE, "object": REMOTE}
        )
        assert isinstance(parsed, DeleteActivity)
        assert parsed.object_id == REMOTE

    def test_delete_tombstone_by_id(self) -> None:
        parsed = parse_activity(
            {
                "id": _id(1),
                "type": "Delete",
                "actor": REMOTE,
                "object": {"id": "https://remote.example/notes/1", "type": "Tombstone"},
            }
        )
        assert parsed.object == "https://remote.example/notes/1"

    @pytest.mark.parametrize(
        "data",
        [
            {"type": "Follow", "actor": ALICE, "object": BOB},
            {"id": _id(1), "type": "Follow", "object": BOB},
            {"id": _id(1), "type": "Follow", "actor": ALICE},
            {"id": _id(1), "type": "Question", "actor": ALICE, "object": BOB},
            {"id": _id(1), "type": "Follow", "actor": ALICE, "object": {"type": "Person"}},
            {"id": _id(1), "type": "Create", "actor": ALICE, "object": "https://x/1"},
        ],
    )
    def test_invalid_activities(self, data: dict) -> None:
        with pytest.raises(InvalidActivityError):
            parse_activity(data)

    def test_invalid_json_text(self) -> None:
        with pytest.raises(InvalidActivityError):
            parse_activity("{not json")

    def test_non_object_json(self) -> None:
        with pytest.raises(InvalidActivityError):
            parse_activity("[1, 2]")
