"""Organization engine errors."""


class OrganizationError(Exception):
    """Base exception for planning and plan lifecycle failures."""


class PlanConfigurationError(OrganizationError, ValueError):
    """Raised when a rule or its options cannot produce a plan."""


class PlanStateError(OrganizationError):
    """Raised when a lifecycle transition is not valid for the plan status."""


class MoveExecutionError(OrganizationError):
    """Raised by executors when a single move cannot be carried out."""
