"""
Token bucket admission control for cross-chain transfers.

One bucket exists per (remote chain selector, direction). All arithmetic is
integer: amounts are token units, refill speed is units per second and time
is unix seconds. Between two observations separated by dt seconds a bucket
refills to ``min(max_amount, available_volume + refill_speed * dt)``.
"""
from enum import Enum
from typing import Dict, Iterable, NamedTuple, Optional, Set, Tuple

from bridge_ops.errors import AdmissionRejected, Unauthorized

RATE_LIMIT_ADMIN_ROLE = "RATE_LIMIT_ADMIN"


class Direction(Enum):
    OUTBOUND = True
    INBOUND = False

    @property
    def is_outbound(self) -> bool:
        """The boolean flag the bridge contracts use for this direction."""
        return self.value

    @classmethod
    def from_flag(cls, is_outbound: bool) -> "Direction":
        return cls.OUTBOUND if is_outbound else cls.INBOUND


class RateInfo(NamedTuple):
    """Bucket state, in the same order as the contract's getRateInfo output."""

    available_volume: int
    max_amount: int
    refill_speed: int
    last_update: int
    is_active: bool


def _check_non_negative(**values: int) -> None:
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


class RateBucket:
    """A single saturating token bucket."""

    def __init__(
        self,
        max_amount: int = 0,
        refill_speed: int = 0,
        available_volume: int = 0,
        last_update: int = 0,
        is_active: bool = False,
    ):
        _check_non_negative(
            max_amount=max_amount,
            refill_speed=refill_speed,
            available_volume=available_volume,
            last_update=last_update,
        )
        if available_volume > max_amount:
            raise ValueError(
                f"available_volume ({available_volume}) exceeds max_amount ({max_amount})"
            )
        self.max_amount = max_amount
        self.refill_speed = refill_speed
        self.available_volume = available_volume
        self.last_update = last_update
        self.is_active = is_active

    def __repr__(self) -> str:
        return (
            f"RateBucket(available={self.available_volume}, max={self.max_amount}, "
            f"refill={self.refill_speed}/s, updated={self.last_update}, active={self.is_active})"
        )

    def refreshed(self, now: int) -> int:
        """Available volume as of ``now``, without mutating the bucket."""
        if now < self.last_update:
            raise ValueError(f"Time went backwards: {now} < last update {self.last_update}")
        elapsed = now - self.last_update
        return min(self.max_amount, self.available_volume + self.refill_speed * elapsed)

    def inspect(self, now: int) -> RateInfo:
        return RateInfo(
            available_volume=self.refreshed(now),
            max_amount=self.max_amount,
            refill_speed=self.refill_speed,
            last_update=self.last_update,
            is_active=self.is_active,
        )

    def _refresh(self, now: int) -> None:
        self.available_volume = self.refreshed(now)
        self.last_update = now

    def configure(self, max_amount: int, refill_speed: int, is_active: bool, now: int) -> None:
        """
        Sets capacity and refill speed from ``now`` forward. Volume accrued under
        the old parameters is kept, capped to the new capacity.
        """
        _check_non_negative(max_amount=max_amount, refill_speed=refill_speed)
        self._refresh(now)
        self.max_amount = max_amount
        self.refill_speed = refill_speed
        self.is_active = is_active
        self.available_volume = min(self.available_volume, max_amount)

    def consume(self, amount: int, now: int) -> None:
        """Debits ``amount`` or raises AdmissionRejected leaving the bucket untouched."""
        _check_non_negative(amount=amount)
        if not self.is_active:
            return

        available = self.refreshed(now)
        if amount > available:
            raise AdmissionRejected(amount=amount, available=available)

        self.available_volume = available - amount
        self.last_update = now


BucketKey = Tuple[int, Direction]


class RateLimiter:
    """Rate buckets of one bridge, keyed by remote chain selector and direction."""

    def __init__(self, admins: Optional[Iterable[str]] = None):
        self._admins: Set[str] = set(admins or [])
        self._buckets: Dict[BucketKey, RateBucket] = dict()

    def _bucket(self, selector: int, direction: Direction) -> RateBucket:
        key = (selector, direction)
        if key not in self._buckets:
            self._buckets[key] = RateBucket()
        return self._buckets[key]

    def _check_admin(self, sender: str) -> None:
        if sender not in self._admins:
            raise Unauthorized(account=sender, role=RATE_LIMIT_ADMIN_ROLE)

    def is_admin(self, account: str) -> bool:
        return account in self._admins

    def grant_admin(self, account: str) -> None:
        self._admins.add(account)

    def revoke_admin(self, account: str) -> None:
        self._admins.discard(account)

    def configure(
        self,
        selector: int,
        direction: Direction,
        max_amount: int,
        refill_speed: int,
        sender: str,
        now: int,
        is_active: bool = True,
    ) -> None:
        self._check_admin(sender)
        self._bucket(selector, direction).configure(
            max_amount=max_amount, refill_speed=refill_speed, is_active=is_active, now=now
        )

    def consume(self, selector: int, direction: Direction, amount: int, now: int) -> None:
        self._bucket(selector, direction).consume(amount=amount, now=now)

    def check(self, selector: int, direction: Direction, amount: int, now: int) -> None:
        """Raises AdmissionRejected if ``consume`` would, without debiting."""
        bucket = self._bucket(selector, direction)
        if not bucket.is_active:
            return
        available = bucket.refreshed(now)
        if amount > available:
            raise AdmissionRejected(amount=amount, available=available)

    def inspect(self, selector: int, direction: Direction, now: int) -> RateInfo:
        return self._bucket(selector, direction).inspect(now)
