"""Logging filters for request context injection.

The filters add the request ID, local actor ID and remote peer from
:mod:`socialfed.request_context` to every log record, so existing log
statements in the federation and push code get correlation for free.
"""

import logging

from socialfed import request_context


class RequestContextFilter(logging.Filter):
    """
    Logging filter that adds a formatted ``context`` attribute to records.

    The context is formatted as ``[req_id:actor_id:peer]`` with "-" for
    missing values.

    Usage:
        >>> handler = logging.StreamHandler()
        >>> handler.addFilter(RequestContextFilter())
        >>> handler.setFormatter(logging.Formatter(
        ...     "%(asctime)s %(context)s %(name)s:%(levelname)s: %(message)s"
        ... ))
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = request_context.format_context_compact()  # type: ignore[attr-defined]
        return True


class StructuredContextFilter(logging.Filter):
    """
    Logging filter that injects request context as separate fields.

    Adds ``request_id``, ``actor_id`` and ``peer_id`` attributes to each
    record (None when unset), for JSON formatters.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        context = request_context.get_context_dict()

        record.request_id = context["request_id"]  # type: ignore[attr-defined]
        record.actor_id = context["actor_id"]  # type: ignore[attr-defined]
        record.peer_id = context["peer_id"]  # type: ignore[attr-defined]

        return True


def add_context_filter_to_handler(
    handler: logging.Handler, *, structured: bool = False
) -> None:
    """
    Add a request context filter to a logging handler.

    Args:
        handler: The logging handler to add the filter to
        structured: If True, use StructuredContextFilter for JSON logging;
                   if False, use RequestContextFilter for text logging
    """
    filter_class = StructuredContextFilter if structured else RequestContextFilter
    handler.addFilter(filter_class())


def add_context_filter_to_logger(
    logger: logging.Logger | str, *, structured: bool = False
) -> None:
    """Add a request context filter to all handlers of a logger."""
    if isinstance(logger, str):
        logger = logging.getLogger(logger)

    filter_class = StructuredContextFilter if structured else RequestContextFilter
    for handler in logger.handlers:
        handler.addFilter(filter_class())
