"""Base exception for the socialfed package.

Concrete errors live next to the code that raises them, e.g.
:class:`socialfed.follow.DuplicateFollowError`.
"""


class SocialFedError(Exception):
    """Base exception class for all socialfed errors."""

    pass


class ActorNotFoundError(SocialFedError):
    """Raised when a referenced local actor does not exist."""

    pass
