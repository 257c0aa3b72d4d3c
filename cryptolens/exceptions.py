class AppError(Exception):
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} '{resource_id}' not found", code="NOT_FOUND")


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class UnauthorizedError(AppError):
    def __init__(self, message: str):
        super().__init__(message, code="UNAUTHORIZED")


class ProviderConnectionError(AppError, ConnectionError):
    """Transport or handshake failure talking to a tool provider.

    The owning session has already been torn down when this is raised, so
    callers may simply try again.
    """

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}", code="PROVIDER_UNAVAILABLE")


class NoContentError(AppError):
    def __init__(self, provider: str, tool: str):
        self.provider = provider
        super().__init__(f"{provider} returned no content for '{tool}'", code="NO_CONTENT")


class UnparseableResponseError(AppError):
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}", code="UNPARSEABLE_RESPONSE")


class ProviderReportedError(AppError):
    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}", code="PROVIDER_ERROR")
