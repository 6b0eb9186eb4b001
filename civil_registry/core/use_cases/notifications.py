"""
Use Case: Notifications

The system writes notifications on workflow events (approval, agent
status changes). Citizens read their own inbox and mark entries READ.
"""

import logging

from civil_registry.core.entities.status import NotificationStatus, RequestStatus
from civil_registry.core.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    RequestStatus.PENDING: "en attente",
    RequestStatus.IN_PROGRESS: "en cours de traitement",
    RequestStatus.COMPLETED: "traitée",
    RequestStatus.REJECTED: "rejetée",
}


class Notifier:
    """Writes notifications through the current store."""

    def __init__(self, store):
        self._store = store

    def notify(self, citizen_id: str, title: str, content: str, type: str, reference_id: str | None = None):
        notification = self._store.notifications.add(
            citizen_id=citizen_id,
            title=title,
            content=content,
            type=type,
            reference_id=reference_id,
            status=NotificationStatus.UNREAD.value,
        )
        logger.debug(f"Notification {notification.id} ({type}) for citizen {citizen_id}")
        return notification

    def status_changed(self, citizen_id: str, type: str, reference_id: str, label: str, status: RequestStatus):
        return self.notify(
            citizen_id=citizen_id,
            title=f"Mise à jour de votre {label}",
            content=f"Votre {label} est maintenant {STATUS_LABELS.get(status, status.value)}.",
            type=type,
            reference_id=reference_id,
        )


class ListNotificationsUseCase:
    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str):
        return self._store.notifications.for_citizen(citizen_id)


class MarkNotificationReadUseCase:
    """Marks one of the caller's notifications READ. Other citizens' ids read as missing."""

    def __init__(self, store):
        self._store = store

    def execute(self, citizen_id: str, notification_id: str | None):
        if not notification_id:
            raise ValidationError("notificationId", message="ID de notification manquant")
        notification = self._store.notifications.get_for_citizen(notification_id, citizen_id)
        if notification is None:
            raise NotFound("Notification non trouvée")
        notification.status = NotificationStatus.READ.value
        self._store.flush()
        return notification
