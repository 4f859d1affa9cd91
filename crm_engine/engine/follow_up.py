"""
Follow-up classifier.

A client needs follow-up when it never exchanged a message, or when its most
recent message is at least `days_without_message` days old. A message sent
exactly on the cutoff counts as old.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

from crm_engine.config.settings import settings
from crm_engine.storage.base import ClientStore
from crm_engine.storage.records import BasicClient, ClientActivity

logger = logging.getLogger(__name__)


def follow_up_cutoff(now: datetime, days_without_message: int) -> datetime:
    return now - timedelta(days=days_without_message)


def needs_follow_up(last_message_at: Optional[datetime], cutoff: datetime) -> bool:
    if last_message_at is None:
        return True
    return last_message_at <= cutoff


def select_clients_needing_follow_up(
    activity: Iterable[ClientActivity],
    now: datetime,
    days_without_message: int,
) -> List[BasicClient]:
    """
    Pick the clients that need outreach.

    Rows may repeat a client (e.g. when "no messages" and "old messages" are
    gathered separately); a client is kept once, judged on its latest message.
    Result is sorted by name, then id.
    """
    cutoff = follow_up_cutoff(now, days_without_message)

    latest = {}
    for row in activity:
        seen = latest.get(row.id)
        if seen is None or (
            row.last_message_at is not None
            and (seen.last_message_at is None or row.last_message_at > seen.last_message_at)
        ):
            latest[row.id] = row

    selected = [
        BasicClient(id=row.id, name=row.name, national_id=row.national_id)
        for row in latest.values()
        if needs_follow_up(row.last_message_at, cutoff)
    ]
    return sorted(selected, key=lambda c: (c.name, c.id))


class FollowUpClassifier:
    """Loads client activity from storage and applies the follow-up rule."""

    def __init__(
        self,
        store: ClientStore,
        days_without_message: int = None,
        clock: Callable[[], datetime] = None,
    ):
        self.store = store
        self.days_without_message = (
            days_without_message
            if days_without_message is not None
            else settings.follow_up_days_without_message
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_clients_needing_follow_up(self) -> List[BasicClient]:
        activity = await self.store.list_client_activity()
        clients = select_clients_needing_follow_up(
            activity, self._clock(), self.days_without_message
        )
        logger.info(
            f"Follow-up check: {len(clients)} of {len(activity)} clients need outreach "
            f"(threshold={self.days_without_message} days)"
        )
        return clients
