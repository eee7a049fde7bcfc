"""Typed booking errors.

Every failure the booking core can report is one of these classes, so callers
can render a specific message instead of parsing strings. Each error carries a
stable ``code`` and the HTTP status the API layer answers with.
"""

from typing import Any


class TrainingDeskError(Exception):
    """Base class for booking and credit errors.

    Attributes:
        code: Stable machine-readable error code.
        message: Human-readable description.
        details: Extra figures for the caller (conflicting ids, counts...).
    """

    code = "TRAINING_DESK_ERROR"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details}


class NotFoundError(TrainingDeskError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} {identifier} not found", resource=resource, id=identifier)


class SessionValidationError(TrainingDeskError):
    code = "INVALID_SESSION"
    status_code = 422


class SlotConflictError(TrainingDeskError):
    code = "SLOT_CONFLICT"
    status_code = 409

    def __init__(self, machine_id: int, conflicts: list[int]):
        self.conflicts = list(conflicts)
        super().__init__(
            f"Machine {machine_id} is already booked for this time window",
            machine_id=machine_id,
            conflicts=self.conflicts,
        )


class TrainerConflictError(TrainingDeskError):
    code = "TRAINER_CONFLICT"
    status_code = 409

    def __init__(self, trainer_id: int, conflicts: list[int]):
        self.conflicts = list(conflicts)
        super().__init__(
            f"Trainer {trainer_id} already has a session during this time window",
            trainer_id=trainer_id,
            conflicts=self.conflicts,
        )


class MachineUnavailableError(TrainingDeskError):
    code = "MACHINE_UNAVAILABLE"
    status_code = 409

    def __init__(self, machine_id: int):
        super().__init__(f"Machine {machine_id} is not available for booking", machine_id=machine_id)


class InvalidTransitionError(TrainingDeskError):
    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, current: str, requested: str, message: str | None = None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move a {current} session to {requested}",
            current_status=current,
            requested_status=requested,
        )


class NoRemainingCreditsError(TrainingDeskError):
    code = "NO_REMAINING_CREDITS"
    status_code = 409

    def __init__(self, subscription_id: int):
        super().__init__(
            "This member has no remaining sessions in their subscription",
            subscription_id=subscription_id,
        )


class NoActiveSubscriptionError(TrainingDeskError):
    code = "NO_ACTIVE_SUBSCRIPTION"
    status_code = 422

    def __init__(self, member_id: int):
        super().__init__(
            "This member does not have an active subscription",
            member_id=member_id,
        )


class DuplicateTrialMemberError(TrainingDeskError):
    code = "DUPLICATE_TRIAL_MEMBER"
    status_code = 409

    def __init__(self, email: str):
        super().__init__(
            "This email is already registered. Please use a different email.",
            email=email,
        )


class WeeklyLimitReachedError(TrainingDeskError):
    code = "WEEKLY_LIMIT_REACHED"
    status_code = 409

    def __init__(self, scope: str, current: int, max_allowed: int):
        super().__init__(
            f"Weekly {scope} session limit reached ({current}/{max_allowed})",
            scope=scope,
            current_count=current,
            max_allowed=max_allowed,
        )
