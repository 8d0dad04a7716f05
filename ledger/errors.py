# ==========================================================
#                  LEDGER EXCEPTIONS
# ==========================================================
# Every error here is user-correctable: the operation that raised it
# persisted nothing. ServiceUnavailable is the only infrastructure one.


class LedgerError(Exception):
    """Base ledger exception"""
    status_code = 400
    code = "ledger_error"

    def __init__(self, message=None, **extra):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.extra = extra

    def to_dict(self):
        payload = {"error": self.message, "code": self.code}
        payload.update(self.extra)
        return payload


class ValidationError(LedgerError):
    """Invalid input"""
    code = "validation_error"


class InsufficientBalance(LedgerError):
    """Insufficient balance"""
    code = "insufficient_balance"


class BelowMinimum(LedgerError):
    """Amount is below the allowed minimum"""
    code = "below_minimum"


class InvalidReferralCode(LedgerError):
    """Invalid Referral Code"""
    code = "invalid_referral_code"


class NothingToClaim(LedgerError):
    """Nothing to claim yet"""
    code = "nothing_to_claim"


class WrongCredentials(LedgerError):
    """Wrong credentials"""
    status_code = 401
    code = "wrong_credentials"


class Unauthorized(LedgerError):
    """Authentication required"""
    status_code = 401
    code = "unauthorized"


class Forbidden(LedgerError):
    """Admin access required"""
    status_code = 403
    code = "forbidden"


class NotFound(LedgerError):
    """Not found"""
    status_code = 404
    code = "not_found"


class NotPending(LedgerError):
    """Transaction is not pending"""
    status_code = 409
    code = "not_pending"


class DuplicateEmail(LedgerError):
    """Email already registered"""
    status_code = 409
    code = "duplicate_email"


class ServiceUnavailable(LedgerError):
    """Service temporarily unavailable, please try again"""
    status_code = 503
    code = "service_unavailable"
