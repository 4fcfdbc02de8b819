class BillingError(Exception):
    """Raised when an invoice cannot be computed for a client."""


class EmailConfigurationError(RuntimeError):
    """Raised when outbound e-mail is not configured (missing relay key)."""


class StatementGenerationError(RuntimeError):
    """Raised when a statement PDF cannot be rendered or protected."""
