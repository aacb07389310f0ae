"""User notifications and the periodic appointment-reminder check."""

import uuid
from dataclasses import replace
from datetime import timedelta
from zoneinfo import ZoneInfo

import structlog

from campus_hub.entities import (
    Appointment,
    AppointmentStatus,
    Notification,
    NotificationKind,
    Principal,
)
from campus_hub.errors import NotFoundError, PermissionDeniedError
from campus_hub.protocols import CampusStore, Clock, SystemClock

from . import time_slots
from .pubsub import NOTIFICATION_TOPIC, PubSub

logger = structlog.get_logger(__name__)


class NotificationService:
    """Creates, lists and acknowledges notifications.

    ``check_and_notify`` is the body of the recurring background job: it
    reminds both parties of approved appointments that start within the
    reminder lead time.
    """

    def __init__(
        self,
        store: CampusStore,
        pubsub: PubSub,
        clock: Clock | None = None,
        timezone: ZoneInfo | None = None,
        reminder_lead: timedelta = timedelta(minutes=30),
    ) -> None:
        self._store = store
        self._pubsub = pubsub
        self._clock = clock or SystemClock()
        self._tz = timezone or ZoneInfo("UTC")
        self._reminder_lead = reminder_lead

    def notify(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        body: str,
        appointment_id: str | None = None,
    ) -> Notification:
        """Store a notification and push it to the user's live subscriptions."""
        notification = Notification(
            id=uuid.uuid4().hex,
            user_id=user_id,
            kind=kind,
            title=title,
            body=body,
            created_at=self._clock.now(),
            appointment_id=appointment_id,
        )
        self._store.save_notification(notification)
        self._pubsub.publish(NOTIFICATION_TOPIC, notification)
        return notification

    def list_for(self, principal: Principal, unread_only: bool = False) -> list[Notification]:
        notifications = self._store.list_notifications(principal.id)
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        return notifications

    def mark_read(self, principal: Principal, notification_id: str) -> Notification:
        notification = self._store.get_notification(notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.user_id != principal.id:
            raise PermissionDeniedError("Cannot acknowledge another user's notification")
        if notification.read:
            return notification
        notification = replace(notification, read=True)
        self._store.save_notification(notification)
        return notification

    def check_and_notify(self) -> int:
        """Send reminders for approved appointments starting soon.

        An appointment is flagged ``reminder_sent`` only after both of its
        notifications were stored, so a failure leaves it eligible for the
        next run.

        Returns:
            Number of appointments reminded in this run
        """
        now = self._clock.now()
        horizon = now + self._reminder_lead
        reminded = 0

        for appointment in self._store.list_appointments():
            if appointment.status is not AppointmentStatus.APPROVED or appointment.reminder_sent:
                continue
            starts_at = time_slots.to_utc(appointment.date, appointment.start_time, self._tz)
            if not now <= starts_at <= horizon:
                continue
            try:
                self._remind(appointment, int((starts_at - now).total_seconds() // 60))
            except Exception:
                logger.exception("appointment_reminder_failed", appointment_id=appointment.id)
                continue
            self._store.save_appointment(replace(appointment, reminder_sent=True))
            reminded += 1

        logger.info("notification_check_completed", reminded=reminded, checked_at=now.isoformat())
        return reminded

    def _remind(self, appointment: Appointment, minutes: int) -> None:
        when = f"{appointment.date.isoformat()} {appointment.start_time}"
        body = f"Your appointment at {when} starts in {minutes} minutes: {appointment.purpose}"
        for user_id in (appointment.student_id, appointment.faculty_id):
            self.notify(
                user_id,
                NotificationKind.APPOINTMENT_REMINDER,
                "Upcoming appointment",
                body,
                appointment_id=appointment.id,
            )
