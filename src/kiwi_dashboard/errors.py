class ConfigurationError(RuntimeError):
    """Required configuration (credentials, keys) is missing."""


class UpstreamError(RuntimeError):
    """A provider request failed. The message is meant for the end user."""


class RequestValidationError(ValueError):
    """Caller supplied an unusable token, state or date range."""


class ImportFailedError(ValueError):
    pass
