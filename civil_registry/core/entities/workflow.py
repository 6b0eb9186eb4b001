"""
Entity: Request status machine

    PENDING ──► IN_PROGRESS ──► COMPLETED
       │             │
       └──► REJECTED ◄┘

COMPLETED and REJECTED are terminal. In permissive mode only enum
membership is checked (PENDING -> COMPLETED is allowed); strict mode
enforces the table.
"""

from civil_registry.core.entities.status import RequestStatus, parse_request_status
from civil_registry.core.errors import InvalidStatus

TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.IN_PROGRESS, RequestStatus.REJECTED}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.COMPLETED, RequestStatus.REJECTED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}

# Values an agent or admin may ask for. DELETED is only reachable via soft delete.
SETTABLE_STATUSES = frozenset({
    RequestStatus.PENDING,
    RequestStatus.IN_PROGRESS,
    RequestStatus.COMPLETED,
    RequestStatus.REJECTED,
})

INITIAL_STATUS = RequestStatus.PENDING


class StatusMachine:
    """Validates a requested status change for a birth declaration or certificate."""

    def __init__(self, strict: bool = False):
        self.strict = strict

    def parse(self, value: str | None) -> RequestStatus:
        """Map a submitted value onto the enum, rejecting anything outside it."""
        status = parse_request_status(value)
        if status is None or status not in SETTABLE_STATUSES:
            raise InvalidStatus(value)
        return status

    def can_transition(self, current: RequestStatus | None, target: RequestStatus) -> bool:
        if not self.strict:
            return target in SETTABLE_STATUSES
        if current is None:
            return False
        return target in TRANSITIONS.get(current, frozenset())

    def check(self, current: str | None, requested: str | None) -> RequestStatus:
        """Return the validated target status or raise InvalidStatus."""
        target = self.parse(requested)
        if not self.can_transition(parse_request_status(current), target):
            raise InvalidStatus(
                requested,
                message=f"Transition de statut non autorisée : {current} → {target.value}",
            )
        return target

    @staticmethod
    def is_terminal(status: RequestStatus) -> bool:
        return status in (RequestStatus.COMPLETED, RequestStatus.REJECTED)
