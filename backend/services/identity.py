# backend/services/identity.py
from dataclasses import dataclass
from typing import Optional


# Shopper identity: anonymous (local cache only) or signed in (remote preferred)
@dataclass(frozen=True)
class Identity:
    user_id: Optional[int] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @classmethod
    def authenticated(cls, user_id: int) -> "Identity":
        return cls(user_id=int(user_id))

    def __str__(self) -> str:
        return f"user:{self.user_id}" if self.is_authenticated else "anonymous"


ANONYMOUS = Identity()
