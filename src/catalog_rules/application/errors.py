"""Application layer errors for the catalog rules engine."""


class ApplicationError(Exception):
    """Base exception for all application layer errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize application error.

        Args:
            message: Error message (must be PII-safe)
        """
        super().__init__(message)
        self.message = message


class ConflictError(ApplicationError):
    """Raised when an active record of the tenant already holds a name."""

    def __init__(self, resource: str, name: str) -> None:
        """
        Initialize conflict error.

        Args:
            resource: Kind of record ("validation_rule", "workflow")
            name: Conflicting name
        """
        super().__init__(f"An active {resource} named '{name}' already exists")
        self.resource = resource
        self.name = name


class NotFoundError(ApplicationError):
    """Raised when a record does not exist for the tenant."""

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id
