"""Domain errors for the catalog rules engine."""

from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize domain error.

        Args:
            message: Error message (must not echo tenant data)
        """
        super().__init__(message)
        self.message = message


class DefinitionError(DomainError):
    """Raised when a rule or workflow definition is internally inconsistent.

    Raised synchronously on the administrative write path; nothing is
    persisted when it is raised.
    """

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None) -> None:
        """
        Initialize definition error.

        Args:
            message: Summary message
            errors: Individual problems found in the definition
        """
        super().__init__(message)
        self.errors = list(errors) if errors else [message]
