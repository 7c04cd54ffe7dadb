class IntelError(Exception):
    pass


class InputValidationError(IntelError):
    """Request rejected before any upstream call was made."""


class UnsupportedChainError(InputValidationError):
    pass


class InvalidAddressError(InputValidationError):
    pass


class TokenCountError(InputValidationError):
    pass
