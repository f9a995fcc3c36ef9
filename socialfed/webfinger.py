"""WebFinger (RFC 7033) lookups of local actors by ``acct:handle@domain``."""

import logging
from typing import TYPE_CHECKING, Any

from socialfed.constants import ACTIVITY_JSON_CONTENT_TYPE
from socialfed.errors import SocialFedError

if TYPE_CHECKING:
    from socialfed.identity import ActorIdentityManager

logger = logging.getLogger(__name__)


class WebFingerError(SocialFedError):
    """Raised for resources that are not ``acct:handle@domain``."""

    pass


def parse_resource(resource: str) -> tuple[str, str]:
    """
    Split an acct: resource into handle and domain.

    Example:
        >>> parse_resource("acct:alice@social.example")
        ('alice', 'social.example')
    """
    if not resource or not resource.startswith("acct:"):
        raise WebFingerError(f"Unsupported resource: {resource!r}")
    account = resource[len("acct:"):].lstrip("@")
    handle, sep, domain = account.rpartition("@")
    if not sep or not handle or not domain:
        raise WebFingerError(f"Resource must be acct:handle@domain, got {resource!r}")
    return handle, domain.lower()


def build_webfinger_response(resource: str, actor_url: str) -> dict[str, Any]:
    return {
        "subject": resource,
        "links": [
            {
                "rel": "self",
                "type": ACTIVITY_JSON_CONTENT_TYPE,
                "href": actor_url,
            }
        ],
    }


def resolve(
    identity_manager: "ActorIdentityManager", resource: str, domain: str
) -> dict[str, Any] | None:
    """
    Answer a WebFinger query for a local actor.

    Args:
        identity_manager: Used to look up the handle
        resource: The ``resource`` query parameter
        domain: This server's domain, without scheme

    Returns:
        JRD document, or None when the domain or handle is not ours

    Raises:
        WebFingerError: If the resource is malformed
    """
    handle, resource_domain = parse_resource(resource)
    if resource_domain != domain.lower():
        logger.debug(f"WebFinger for foreign domain {resource_domain}")
        return None
    actor = identity_manager.get_actor_by_handle(handle)
    if actor is None:
        return None
    return build_webfinger_response(resource, actor.actor_url)
