"""
Typed exception hierarchy for the ride pay kernel.

Every error the kernel raises is a subclass of ``RidePayError`` and carries:

  1. a TYPED class, so callers catch by type rather than by message;
  2. a ``code`` class attribute, machine-readable and API-safe;
  3. structured attributes set in ``__init__`` (never parsed from strings).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    RidePayError (base)
    |
    +-- ReferenceDataMissingError
    |   +-- NoApplicableRateError
    |   +-- MissingHoursCodeError
    |   +-- MissingHoursOptionError
    |   +-- MissingDriverSettingsError
    |
    +-- InvalidStateTransitionError
    |   +-- PeriodNotReadyError
    |   +-- DisputeAlreadyOpenError
    |   +-- DisputedValueLockedError
    |   +-- OpenDisputeBlocksApprovalError
    |   +-- UnauthorizedActorError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- RideValidationError
    |
    +-- EntityNotFoundError
        +-- RideRecordNotFoundError
        +-- RideExecutionNotFoundError
        +-- WeekApprovalNotFoundError
        +-- PeriodApprovalNotFoundError
        +-- DisputeNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Reference data  | NO_APPLICABLE_RATE          | No CAO row covers the ride date
                | MISSING_HOURS_CODE          | Hours code id does not resolve
                | MISSING_HOURS_OPTION        | Explicit hours option id does not resolve
                | MISSING_DRIVER_SETTINGS     | Driver has no compensation settings
----------------|-----------------------------|-----------------------------------------
State           | INVALID_STATE_TRANSITION    | Action not allowed in current status
                | PERIOD_NOT_READY            | Period signing before all weeks signed
                | DISPUTE_ALREADY_OPEN        | Second unresolved dispute on one record
                | DISPUTED_VALUE_LOCKED       | Editing a correction under dispute
                | OPEN_DISPUTE_BLOCKS_APPROVAL| Allowing a week with an open dispute
                | UNAUTHORIZED_ACTOR          | Wrong party for the action
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENT_MODIFICATION     | Stale version or lost lazy-create race
----------------|-----------------------------|-----------------------------------------
Validation      | RIDE_VALIDATION_FAILED      | Raw ride inputs rejected
----------------|-----------------------------|-----------------------------------------
Not found       | *_NOT_FOUND                 | Id does not resolve

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        workflow.sign_week(week_id, actor)
    except InvalidStateTransitionError as e:
        # current_status lets the caller resync its view
        return {"error": e.code, "status": e.current_status}

ReferenceDataMissingError is fatal for the affected ride record and is not
retried.  ConcurrentModificationError is safe to retry once after re-reading.
"""

from __future__ import annotations


class RidePayError(Exception):
    """
    Base exception for all ride pay kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "RIDEPAY_ERROR"


# Reference data


class ReferenceDataMissingError(RidePayError):
    """A reference row required for a calculation could not be resolved."""

    code: str = "REFERENCE_DATA_MISSING"


class NoApplicableRateError(ReferenceDataMissingError):
    """No CAO rate row is valid on the given date."""

    code: str = "NO_APPLICABLE_RATE"

    def __init__(self, effective_date: str):
        self.effective_date = effective_date
        super().__init__(f"No CAO rate row applies to {effective_date}")


class MissingHoursCodeError(ReferenceDataMissingError):
    """Hours code id does not resolve."""

    code: str = "MISSING_HOURS_CODE"

    def __init__(self, hours_code_id: str):
        self.hours_code_id = hours_code_id
        super().__init__(f"Hours code not found: {hours_code_id}")


class MissingHoursOptionError(ReferenceDataMissingError):
    """Explicitly requested hours option id does not resolve."""

    code: str = "MISSING_HOURS_OPTION"

    def __init__(self, hours_option_id: str):
        self.hours_option_id = hours_option_id
        super().__init__(f"Hours option not found: {hours_option_id}")


class MissingDriverSettingsError(ReferenceDataMissingError):
    """Driver has no compensation settings row."""

    code: str = "MISSING_DRIVER_SETTINGS"

    def __init__(self, driver_id: str):
        self.driver_id = driver_id
        super().__init__(f"No compensation settings for driver {driver_id}")


# State machine


class InvalidStateTransitionError(RidePayError):
    """
    Action is not allowed from the entity's current status.

    ``current_status`` is returned so the caller can resync.
    """

    code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        action: str,
        reason: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        self.reason = reason
        message = (
            f"Cannot {action} {entity_type} {entity_id} "
            f"in status '{current_status}'"
        )
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class PeriodNotReadyError(InvalidStateTransitionError):
    """Period signing attempted before every constituent week is signed."""

    code: str = "PERIOD_NOT_READY"

    def __init__(
        self,
        period_approval_id: str,
        current_status: str,
        signed_weeks: int,
        required_weeks: int,
    ):
        self.signed_weeks = signed_weeks
        self.required_weeks = required_weeks
        super().__init__(
            "PeriodApproval",
            period_approval_id,
            current_status,
            "sign",
            reason=f"{signed_weeks} of {required_weeks} weeks signed",
        )


class DisputeAlreadyOpenError(InvalidStateTransitionError):
    """The record already has an unresolved dispute."""

    code: str = "DISPUTE_ALREADY_OPEN"

    def __init__(self, entity_type: str, entity_id: str, dispute_id: str, current_status: str):
        self.dispute_id = dispute_id
        super().__init__(
            entity_type,
            entity_id,
            current_status,
            "open_dispute",
            reason=f"dispute {dispute_id} is still unresolved",
        )


class DisputedValueLockedError(InvalidStateTransitionError):
    """The correction value is under dispute and cannot be edited directly."""

    code: str = "DISPUTED_VALUE_LOCKED"

    def __init__(self, entity_type: str, entity_id: str, dispute_id: str):
        self.dispute_id = dispute_id
        super().__init__(
            entity_type,
            entity_id,
            "disputed",
            "edit_correction",
            reason=f"correction is locked by dispute {dispute_id}",
        )


class OpenDisputeBlocksApprovalError(InvalidStateTransitionError):
    """A week cannot be allowed while one of its rides is disputed."""

    code: str = "OPEN_DISPUTE_BLOCKS_APPROVAL"

    def __init__(self, week_approval_id: str, current_status: str, dispute_ids: list[str]):
        self.dispute_ids = dispute_ids
        super().__init__(
            "WeekApproval",
            week_approval_id,
            current_status,
            "allow",
            reason=f"{len(dispute_ids)} open dispute(s) in week",
        )


class UnauthorizedActorError(InvalidStateTransitionError):
    """The acting party may not perform this action."""

    code: str = "UNAUTHORIZED_ACTOR"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        current_status: str,
        action: str,
        actor_role: str,
    ):
        self.actor_role = actor_role
        super().__init__(
            entity_type,
            entity_id,
            current_status,
            action,
            reason=f"role '{actor_role}' may not {action}",
        )


# Concurrency


class ConcurrencyError(RidePayError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """The entity changed underneath the caller; re-read and retry once."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        expected_version: int | None = None,
        actual_version: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


# Validation


class RideValidationError(RidePayError):
    """Raw ride inputs were rejected before any calculation ran."""

    code: str = "RIDE_VALIDATION_FAILED"

    def __init__(self, field_errors: list[dict]):
        self.field_errors = field_errors
        fields = ", ".join(e["field"] for e in field_errors)
        super().__init__(f"Invalid ride inputs: {fields}")


# Not found


class EntityNotFoundError(RidePayError):
    """Base exception for unknown ids."""

    code: str = "ENTITY_NOT_FOUND"
    entity_type: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type} not found: {entity_id}")


class RideRecordNotFoundError(EntityNotFoundError):
    code: str = "RIDE_RECORD_NOT_FOUND"
    entity_type = "RideRecord"


class RideExecutionNotFoundError(EntityNotFoundError):
    code: str = "RIDE_EXECUTION_NOT_FOUND"
    entity_type = "RideExecution"


class WeekApprovalNotFoundError(EntityNotFoundError):
    code: str = "WEEK_APPROVAL_NOT_FOUND"
    entity_type = "WeekApproval"


class PeriodApprovalNotFoundError(EntityNotFoundError):
    code: str = "PERIOD_APPROVAL_NOT_FOUND"
    entity_type = "PeriodApproval"


class DisputeNotFoundError(EntityNotFoundError):
    code: str = "DISPUTE_NOT_FOUND"
    entity_type = "Dispute"
