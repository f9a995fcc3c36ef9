"""Tests for WebFinger resolution."""

import pytest

from socialfed.webfinger import WebFingerError, parse_resource, resolve


class TestParseResource:
    def test_parse(self) -> None:
        assert parse_resource("acct:alice@Social.Example") == ("alice", "social.example")

    @pytest.mark.parametrize(
        "resource", ["", "alice@social.example", "acct:alice", "acct:@social.example", "https://x/y"]
    )
    def test_invalid(self, resource: str) -> None:
        with pytest.raises(WebFingerError):
            parse_resource(resource)


class TestResolve:
    def test_local_actor(self, identity, alice) -> None:
        response = resolve(identity, "acct:alice@social.example", "social.example")

        assert response == {
            "subject": "acct:alice@social.example",
            "links": [
                {
                    "rel": "self",
                    "type": "application/activity+json",
                    "href": alice.actor_url,
                }
            ],
        }

    def test_unknown_handle(self, identity) -> None:
        assert resolve(identity, "acct:nobody@social.example", "social.example") is None

    def test_foreign_domain(self, identity, alice) -> None:
        assert resolve(identity, "acct:alice@remote.example", "social.example") is None
