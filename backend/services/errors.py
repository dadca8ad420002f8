# backend/services/errors.py
import enum
from dataclasses import dataclass, field
from typing import List, Optional


class SyncErrorCode(str, enum.Enum):
    INVALID_QUANTITY = "INVALID_QUANTITY"
    PRODUCT_UNAVAILABLE = "PRODUCT_UNAVAILABLE"
    REMOTE_UNREACHABLE = "REMOTE_UNREACHABLE"
    MALFORMED_CACHE = "MALFORMED_CACHE"
    IDENTITY_REQUIRED = "IDENTITY_REQUIRED"


class SyncError(Exception):
    code: SyncErrorCode

    def __init__(self, message: str = ""):
        super().__init__(message or self.code.value)
        self.message = message or self.code.value


class InvalidQuantity(SyncError):
    code = SyncErrorCode.INVALID_QUANTITY


class ProductUnavailable(SyncError):
    code = SyncErrorCode.PRODUCT_UNAVAILABLE


class RemoteUnreachable(SyncError):
    code = SyncErrorCode.REMOTE_UNREACHABLE

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def rejected(self) -> bool:
        # The store answered and refused this particular request (4xx other than 408/429)
        return self.status_code is not None and 400 <= self.status_code < 500 and self.status_code not in (408, 429)


class MalformedCache(SyncError):
    code = SyncErrorCode.MALFORMED_CACHE


class IdentityRequired(SyncError):
    code = SyncErrorCode.IDENTITY_REQUIRED


@dataclass
class SyncResult:
    """
    Outcome of a synchronizer operation.

    `error` is set only for failures the caller must act on. Degradations that
    were recovered locally (remote down, corrupt cache) are listed in `notices`.
    """
    ok: bool
    error: Optional[SyncErrorCode] = None
    message: Optional[str] = None
    notices: List[SyncErrorCode] = field(default_factory=list)

    @classmethod
    def success(cls, notices: Optional[List[SyncErrorCode]] = None) -> "SyncResult":
        return cls(ok=True, notices=list(notices or []))

    @classmethod
    def failure(cls, exc: SyncError) -> "SyncResult":
        return cls(ok=False, error=exc.code, message=exc.message)

    @property
    def degraded(self) -> bool:
        return SyncErrorCode.REMOTE_UNREACHABLE in self.notices
