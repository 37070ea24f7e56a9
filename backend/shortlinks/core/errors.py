"""Error taxonomy for link management and the redirect pipeline."""

# Machine-readable codes returned alongside HTTP error details
URL_NOT_FOUND = "URL_NOT_FOUND"
INVALID_URL = "INVALID_URL"
ALIAS_ALREADY_EXISTS = "ALIAS_ALREADY_EXISTS"
VALIDATION_ERROR = "VALIDATION_ERROR"
SERVER_ERROR = "SERVER_ERROR"
DATABASE_ERROR = "DATABASE_ERROR"


class ShortLinkError(Exception):
    """Base class for all service errors"""
    code = SERVER_ERROR
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class LinkValidationError(ShortLinkError):
    """Input rejected before touching the store"""
    code = VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, code: str = VALIDATION_ERROR):
        super().__init__(message)
        self.code = code


class DuplicateCode(ShortLinkError):
    """A short code or alias is already registered in the namespace"""
    code = ALIAS_ALREADY_EXISTS
    status_code = 409

    def __init__(self, key: str, message: str = ""):
        super().__init__(message or f"Code '{key}' is already taken")
        self.key = key


class DuplicateAlias(DuplicateCode):
    def __init__(self, alias: str):
        super().__init__(alias, f"Alias '{alias}' is already taken")


class CodeSpaceExhausted(ShortLinkError):
    """Retry budget for random code generation ran out"""

    def __init__(self, attempts: int, length: int):
        super().__init__(
            f"Unable to generate unique short code after {attempts} attempts (length {length})"
        )
        self.attempts = attempts
        self.length = length


class LinkNotFound(ShortLinkError):
    code = URL_NOT_FOUND
    status_code = 404

    def __init__(self, key: str):
        super().__init__("Short URL not found")
        self.key = key


class StorageUnavailable(ShortLinkError):
    """Any persistence failure; safe for the caller to retry"""
    code = DATABASE_ERROR
    status_code = 503
