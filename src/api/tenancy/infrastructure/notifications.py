"""Notification delivery for organization signup and verification.

``NotificationDispatcher`` runs each delivery as a background task after
the business operation committed. A failed delivery is logged and dropped.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from tenancy.infrastructure.observability import (
    DefaultNotificationProbe,
    NotificationProbe,
)

if TYPE_CHECKING:
    from tenancy.domain.aggregates import PendingOrganization, Tenant
    from tenancy.ports.notifications import Notifier


class LoggingNotifier:
    """Notifier that writes the messages to the structured log.

    Used until a mail transport is configured; the verification link in
    the log is what an operator forwards to the signup email.
    """

    def __init__(
        self,
        verification_url_template: str,
        probe: NotificationProbe | None = None,
    ):
        self._template = verification_url_template
        self._probe = probe or DefaultNotificationProbe()

    def verification_link(self, pending: PendingOrganization) -> str:
        return self._template.format(token=pending.verification_token)

    async def send_verification(self, pending: PendingOrganization) -> None:
        self._probe.verification_link_issued(
            pending.email, link=self.verification_link(pending)
        )

    async def send_welcome(self, tenant: Tenant, admin_name: str) -> None:
        self._probe.welcome_issued(
            tenant.id.value, email=tenant.admin_email, admin_name=admin_name
        )


class NotificationDispatcher:
    """Fire-and-forget delivery on top of a ``Notifier``."""

    def __init__(self, notifier: Notifier, probe: NotificationProbe | None = None):
        self._notifier = notifier
        self._probe = probe or DefaultNotificationProbe()
        self._tasks: set[asyncio.Task[None]] = set()

    def verification(self, pending: PendingOrganization) -> None:
        self._spawn(
            "verification",
            pending.email,
            lambda: self._notifier.send_verification(pending),
        )

    def welcome(self, tenant: Tenant, admin_name: str) -> None:
        self._spawn(
            "welcome",
            tenant.admin_email,
            lambda: self._notifier.send_welcome(tenant, admin_name),
        )

    def _spawn(
        self, kind: str, email: str, send: Callable[[], Awaitable[None]]
    ) -> None:
        task = asyncio.create_task(self._deliver(kind, email, send))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(
        self, kind: str, email: str, send: Callable[[], Awaitable[None]]
    ) -> None:
        try:
            await send()
        except Exception as e:
            self._probe.notification_failed(kind, email, e)
            return
        self._probe.notification_sent(kind, email)

    async def drain(self) -> None:
        """Wait for every pending delivery (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
