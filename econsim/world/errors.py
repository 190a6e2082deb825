"""Error types for the resolve and apply stages.

Two kinds of failure exist and they are handled differently:

- ActionError is raised while resolving an action against the world.
  It is an expected business event (insufficient funds, unknown
  instrument, no liquidity). The scheduler drops the action, records
  the error and carries on with the tick.
- EffectError is raised while applying effects. It means an effect
  slipped past resolution in a state it cannot be applied to, or the
  effect itself is malformed. The scheduler halts the run.

Usage:
    from econsim.world.errors import validation_error, ErrorCode

    raise validation_error(
        "Amount must be positive, got: -1.00",
        code=ErrorCode.INVALID_ARGUMENT,
        field="amount",
    )
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .effects import Effect


class ErrorCategory(str, Enum):
    """Categories for error classification.

    - VALIDATION: the action carried bad parameters
    - PERMISSION: the acting agent may not do this
    - RESOURCE: an entity is missing or a balance is too small
    - EXECUTION: the action cannot be carried out right now
    - SYSTEM: internal error, unexpected
    """

    VALIDATION = "validation"
    PERMISSION = "permission"
    RESOURCE = "resource"
    EXECUTION = "execution"
    SYSTEM = "system"


class ErrorCode(str, Enum):
    """Specific error codes for programmatic handling."""

    # Validation errors
    INVALID_ARGUMENT = "invalid_argument"

    # Permission errors
    NOT_OWNER = "not_owner"
    WRONG_AGENT_KIND = "wrong_agent_kind"

    # Resource errors
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    NO_WORKERS = "no_workers"

    # Execution errors
    NO_LIQUIDITY = "no_liquidity"
    NOT_DUE = "not_due"

    # System errors
    UNHANDLED_ACTION = "unhandled_action"


_CATEGORY_BY_CODE: dict[ErrorCode, ErrorCategory] = {
    ErrorCode.INVALID_ARGUMENT: ErrorCategory.VALIDATION,
    ErrorCode.NOT_OWNER: ErrorCategory.PERMISSION,
    ErrorCode.WRONG_AGENT_KIND: ErrorCategory.PERMISSION,
    ErrorCode.NOT_FOUND: ErrorCategory.RESOURCE,
    ErrorCode.INSUFFICIENT_FUNDS: ErrorCategory.RESOURCE,
    ErrorCode.INSUFFICIENT_INVENTORY: ErrorCategory.RESOURCE,
    ErrorCode.NO_WORKERS: ErrorCategory.RESOURCE,
    ErrorCode.NO_LIQUIDITY: ErrorCategory.EXECUTION,
    ErrorCode.NOT_DUE: ErrorCategory.EXECUTION,
    ErrorCode.UNHANDLED_ACTION: ErrorCategory.SYSTEM,
}


class ActionError(Exception):
    """A business-rule violation found while resolving an action.

    The scheduler fills in agent_id and action_name when the resolver
    did not, so every recorded failure is attributable.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        agent_id: str | None = None,
        action_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = _CATEGORY_BY_CODE[code]
        self.agent_id = agent_id
        self.action_name = action_name
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "error": self.message,
            "code": self.code.value,
            "category": self.category.value,
            "agent_id": self.agent_id,
            "action": self.action_name,
        }
        if self.details:
            result["details"] = self.details
        return result


def validation_error(
    message: str,
    code: ErrorCode = ErrorCode.INVALID_ARGUMENT,
    **details: Any,
) -> ActionError:
    """Create an error for actions carrying invalid parameters."""
    return ActionError(message, code, details=dict(details) if details else None)


def permission_error(
    message: str,
    code: ErrorCode = ErrorCode.NOT_OWNER,
    **details: Any,
) -> ActionError:
    """Create an error for actions the agent is not allowed to take."""
    return ActionError(message, code, details=dict(details) if details else None)


def resource_error(
    message: str,
    code: ErrorCode = ErrorCode.NOT_FOUND,
    **details: Any,
) -> ActionError:
    """Create an error for missing entities or short balances."""
    return ActionError(message, code, details=dict(details) if details else None)


def execution_error(
    message: str,
    code: ErrorCode,
    **details: Any,
) -> ActionError:
    """Create an error for actions that cannot run in the current state."""
    return ActionError(message, code, details=dict(details) if details else None)


class EffectErrorKind(str, Enum):
    """Why an effect could not be applied."""

    # Malformed effect (negative quantity, unknown variant)
    APPLICATION_ERROR = "application_error"
    # The world is not in the state the effect needs (e.g. not enough stock)
    INVALID_STATE = "invalid_state"


class EffectError(Exception):
    """An effect could not be applied to the world state.

    Always fatal for the run: the batch it belonged to is aborted and
    effects applied before it stay applied.
    """

    def __init__(
        self,
        kind: EffectErrorKind,
        message: str,
        effect: Effect | None = None,
    ) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.message = message
        self.effect = effect
        # Set by the executor when the effect was part of a scheduled batch
        self.agent_id: str | None = None
        self.index: int | None = None

    @classmethod
    def invalid_state(cls, message: str) -> EffectError:
        return cls(EffectErrorKind.INVALID_STATE, message)

    @classmethod
    def application_error(cls, message: str) -> EffectError:
        return cls(EffectErrorKind.APPLICATION_ERROR, message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "error": self.message,
            "effect": self.effect.name() if self.effect is not None else None,
            "agent_id": self.agent_id,
            "index": self.index,
        }
