"""Table creation for the DynamoDB backend."""

import logging

from pynamodb.models import Model

from socialfed.db.dynamodb.activity_log import InboxItem, OutboxItem
from socialfed.db.dynamodb.actor import Actor, HandleClaim
from socialfed.db.dynamodb.follow import Follow
from socialfed.db.dynamodb.notification import Notification
from socialfed.db.dynamodb.push_subscription import PushSubscription

logger = logging.getLogger(__name__)

MODELS: tuple[type[Model], ...] = (
    Actor,
    HandleClaim,
    Follow,
    InboxItem,
    OutboxItem,
    Notification,
    PushSubscription,
)


def create_tables(wait: bool = True) -> list[str]:
    """
    Create every socialfed table that does not exist yet.

    Returns:
        Names of the tables that were created
    """
    created = []
    for model in MODELS:
        if model.exists():
            continue
        logger.info(f"Creating DynamoDB table {model.Meta.table_name}")
        model.create_table(wait=wait)
        created.append(model.Meta.table_name)
    return created
