from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


EMULATOR_TOKEN_VALUE = "emulator-does-not-support-authentication"
TOKEN_LIFETIME = timedelta(days=1)


@dataclass(frozen=True)
class AccessToken:
    value: str
    issued_at: datetime
    expiration: datetime

    @property
    def lifetime(self) -> timedelta:
        return self.expiration - self.issued_at

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expiration


def emulator_token(now: Optional[datetime] = None) -> AccessToken:
    """Fake token for the RDB emulator, which performs no authentication."""
    issued_at = now or datetime.now(timezone.utc)
    return AccessToken(
        value=EMULATOR_TOKEN_VALUE,
        issued_at=issued_at,
        expiration=issued_at + TOKEN_LIFETIME,
    )
