"""
Notification Dispatcher.

Fans lifecycle events out to email and the live update hub. Every dispatch
is fire-and-forget: it is scheduled as a task after the state change has
committed, and failures are logged and swallowed.
"""

import asyncio
import logging
from typing import Set

from backend.app.models.parcel_enums import ParcelStatus
from backend.app.schemas.parcel import ParcelResponse
from backend.app.services import mailer as templates
from backend.app.services.live_updates import BroadcastHub, STATUS_UPDATED

logger = logging.getLogger("parcel_delivery.notifications")


class NotificationDispatcher:

    def __init__(self, mailer, hub: BroadcastHub):
        self._mailer = mailer
        self._hub = hub
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def notify_booked(self, parcel: ParcelResponse) -> None:
        """Send the booking confirmation to the parcel owner."""
        subject, html, text = templates.booking_confirmation(parcel)
        self._spawn(
            self._mailer.send(parcel.owner_email, subject, html, text),
            f"booking email for parcel {parcel.id}",
        )

    def notify_status_changed(self, parcel: ParcelResponse, new_status: ParcelStatus) -> None:
        """Send a status-change email to the parcel owner."""
        subject, html, text = templates.status_update(parcel, new_status)
        self._spawn(
            self._mailer.send(parcel.owner_email, subject, html, text),
            f"status email ({new_status.value}) for parcel {parcel.id}",
        )

    def broadcast_changed(self) -> None:
        """Tell live viewers that something changed; they re-fetch."""
        self._spawn(self._hub.broadcast(STATUS_UPDATED), "status broadcast")

    async def drain(self) -> None:
        """Wait for every scheduled dispatch to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _spawn(self, coro, label: str) -> None:
        task = asyncio.create_task(self._guard(coro, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    async def _guard(coro, label: str) -> None:
        try:
            await coro
        except Exception:
            logger.exception("Best-effort dispatch failed: %s", label)
