"""Exceptions raised by the auction services"""

GENERIC_RETRY_MESSAGE = "Something went wrong on our side. Please try again later."


class AuctionError(Exception):
    """Base exception for auction operations; message is safe to show users"""
    def __init__(self, message: str, error_code: str = None, is_retryable: bool = False):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.is_retryable = is_retryable


class ValidationError(AuctionError):
    """Malformed or out-of-range input (no state change)"""
    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message, error_code)


class NotFoundError(AuctionError):
    """Unknown item"""
    def __init__(self, message: str, error_code: str = "ITEM_NOT_FOUND"):
        super().__init__(message, error_code)


class NotRegisteredError(AuctionError):
    """Operation requires a registered user"""
    def __init__(self, message: str = "You need to register first using /register command.",
                 error_code: str = "NOT_REGISTERED"):
        super().__init__(message, error_code)


class ConflictError(AuctionError):
    """State changed underneath the request (bid too low, duplicate name)"""
    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message, error_code)


class AuctionClosedError(ConflictError):
    """Item deadline passed or item already finalized"""
    def __init__(self, message: str, error_code: str = "AUCTION_ENDED"):
        super().__init__(message, error_code)


class TransientInfraError(AuctionError):
    """Persistence or transport failure; nothing was committed"""
    def __init__(self, message: str = GENERIC_RETRY_MESSAGE, error_code: str = "INFRA_ERROR"):
        super().__init__(message, error_code, is_retryable=True)
