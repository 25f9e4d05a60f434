"""Error taxonomy for the code-generation workflow."""


class WorkflowError(Exception):
    """Base class for every error the workflow surfaces."""


class ValidationError(WorkflowError):
    """Missing or invalid input. Never retried."""


class MissingCredential(WorkflowError):
    """No model API key is configured."""


class UpstreamFailure(WorkflowError):
    """The model call failed for a reason other than rate limiting."""


class ExhaustedRetries(UpstreamFailure):
    """Rate limiting persisted past the retry cap."""

    def __init__(self, message, attempts):
        super().__init__(message)
        self.attempts = attempts
