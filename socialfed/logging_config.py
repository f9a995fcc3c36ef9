"""Centralized logging configuration for socialfed.

Sets per-subsystem levels for the ``socialfed`` logger hierarchy and quiets
the third-party libraries used for storage and push delivery.
"""

import logging
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from socialfed.config import Config

DB_LOGGERS = ("socialfed.db",)
PUSH_LOGGERS = ("socialfed.push", "socialfed.background")
FEDERATION_LOGGERS = (
    "socialfed.inbox_processor",
    "socialfed.inbox_outbox",
    "socialfed.follow",
    "socialfed.signatures",
)


def configure_socialfed_logging(
    level: int = logging.INFO,
    *,
    db_level: int | None = None,
    push_level: int | None = None,
    federation_level: int | None = None,
) -> None:
    """
    Configure socialfed logging with sensible defaults.

    Args:
        level: Default level for all socialfed loggers (default: INFO)
        db_level: Override for storage backends (default: WARNING to reduce noise)
        push_level: Override for push delivery and the background queue
        federation_level: Override for inbox/outbox and follow handling

    Example:
        Production setup (quiet DB, visible push failures):
            >>> configure_socialfed_logging(
            ...     level=logging.WARNING,
            ...     push_level=logging.INFO,
            ...     db_level=logging.ERROR,
            ... )
    """
    logging.getLogger("socialfed").setLevel(level)

    if db_level is not None:
        _set_levels(DB_LOGGERS, db_level)
    else:
        # Storage is chatty at DEBUG; keep it at WARNING unless everything is ERROR
        _set_levels(
            DB_LOGGERS, max(level, logging.WARNING) if level < logging.ERROR else level
        )

    if push_level is not None:
        _set_levels(PUSH_LOGGERS, push_level)

    if federation_level is not None:
        _set_levels(FEDERATION_LOGGERS, federation_level)

    _configure_third_party_loggers()


def _set_levels(names: tuple[str, ...], level: int) -> None:
    for name in names:
        logging.getLogger(name).setLevel(level)


def _configure_third_party_loggers() -> None:
    """Set the storage and HTTP libraries we sit on to WARNING."""
    noisy_libraries = [
        "pynamodb",
        "botocore",
        "urllib3",
        "urllib3.connectionpool",
        "requests",
        "pywebpush",
    ]

    for library in noisy_libraries:
        logging.getLogger(library).setLevel(logging.WARNING)


def configure_production_logging(*, push_failures: bool = True) -> None:
    """
    Configure logging for production.

    Args:
        push_failures: If True, log push delivery outcomes at INFO level
    """
    configure_socialfed_logging(
        level=logging.WARNING,
        push_level=logging.INFO if push_failures else logging.WARNING,
        federation_level=logging.INFO,
        db_level=logging.ERROR,
    )


def configure_development_logging(*, verbose: bool = False) -> None:
    """Configure logging for development (INFO, or DEBUG when verbose)."""
    level = logging.DEBUG if verbose else logging.INFO

    configure_socialfed_logging(
        level=level,
        db_level=logging.INFO if verbose else logging.WARNING,
    )


def configure_testing_logging(*, debug: bool = False) -> None:
    """
    Configure logging for test runs: errors only unless debug is set.

    Example:
        >>> import os
        >>> configure_testing_logging(debug=os.getenv("SOCIALFED_DEBUG") == "1")
    """
    if debug:
        configure_development_logging(verbose=True)
    else:
        configure_socialfed_logging(logging.ERROR)


def get_context_format(
    *,
    include_timestamp: bool = True,
    include_context: bool = True,
    include_logger: bool = True,
    include_level: bool = True,
) -> str:
    """
    Generate a log format string with optional request context.

    When include_context is True the format contains a ``%(context)s``
    placeholder filled in by :class:`socialfed.log_filter.RequestContextFilter`.

    Example:
        >>> get_context_format()
        '%(asctime)s %(context)s %(name)s:%(levelname)s: %(message)s'
        >>> get_context_format(include_timestamp=False, include_context=False)
        '%(name)s:%(levelname)s: %(message)s'
    """
    parts = []

    if include_timestamp:
        parts.append("%(asctime)s")

    if include_context:
        parts.append("%(context)s")

    logger_level = []
    if include_logger:
        logger_level.append("%(name)s")
    if include_level:
        logger_level.append("%(levelname)s")

    if logger_level:
        parts.append(":".join(logger_level) + ":")

    parts.append("%(message)s")

    return " ".join(parts)


def enable_request_context_filter(
    *,
    logger: str | logging.Logger = "socialfed",
    structured: bool = False,
    handler_type: Literal["all", "stream", "file"] = "all",
) -> None:
    """
    Add a request context filter to the handlers of a logger.

    Args:
        logger: Logger name or Logger object (default: "socialfed")
        structured: Use StructuredContextFilter instead of RequestContextFilter
        handler_type: "all", "stream" (exact StreamHandler only) or "file"
    """
    from socialfed.log_filter import (
        RequestContextFilter,
        StructuredContextFilter,
    )

    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    filter_class = StructuredContextFilter if structured else RequestContextFilter

    for handler in logger.handlers:
        # FileHandler inherits from StreamHandler, so compare exact type
        if handler_type == "stream" and type(handler) is not logging.StreamHandler:
            continue
        if handler_type == "file" and not isinstance(handler, logging.FileHandler):
            continue

        handler.addFilter(filter_class())


def configure_socialfed_logging_with_context(
    level: int = logging.INFO,
    *,
    db_level: int | None = None,
    push_level: int | None = None,
    federation_level: int | None = None,
    enable_context: bool = True,
    structured: bool = False,
) -> None:
    """
    Configure socialfed logging and request context in one call.

    Installs a root StreamHandler when none exists and attaches the context
    filter to every root handler.
    """
    configure_socialfed_logging(
        level=level,
        db_level=db_level,
        push_level=push_level,
        federation_level=federation_level,
    )

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                get_context_format()
                if enable_context
                else get_context_format(include_context=False)
            )
        )
        root_logger.addHandler(handler)

    if enable_context:
        enable_request_context_filter(
            logger=root_logger, structured=structured, handler_type="all"
        )

        if not structured:
            for handler in root_logger.handlers:
                current_format = handler.formatter._fmt if handler.formatter else None  # type: ignore[attr-defined]
                if current_format and "%(context)s" not in current_format:
                    handler.setFormatter(logging.Formatter(get_context_format()))


def configure_logging_from_config(
    config: "Config", *, enable_context: bool = True, structured: bool = False
) -> None:
    """
    Configure socialfed logging at the level named by ``config.log_level``.

    Raises:
        ValueError: If the level name is not a standard logging level
    """
    level = logging.getLevelNamesMapping().get(str(config.log_level).upper())
    if level is None:
        raise ValueError(f"Unknown log level: {config.log_level!r}")
    configure_socialfed_logging_with_context(
        level=level, enable_context=enable_context, structured=structured
    )
