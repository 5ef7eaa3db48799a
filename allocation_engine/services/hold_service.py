"""Short-lived exclusivity holds bridging allocation and confirmation."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from threading import Lock
from typing import Optional
from uuid import uuid4

from allocation_engine.domain.constraints import count_nights
from allocation_engine.domain.errors import HoldConflictError, HoldExpiredError
from allocation_engine.domain.models import Booking, Hold
from allocation_engine.repository.base import InventoryRepository
from allocation_engine.repository.data_repository import DataRepository
from allocation_engine.utils.clock import Clock, utc_now
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)


class HoldManager:
    """Places, releases and confirms holds.

    The availability re-check and the hold write happen together: callers
    serialize on a per-room lock in this process, and the repository applies
    the write only if no live hold or booking overlaps (a conditional insert
    inside one transaction), which also covers other processes sharing the
    store. Expiry is lazy; an expired hold is ignored wherever it is read.
    """

    def __init__(
        self,
        repository: Optional[InventoryRepository] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock
        self._registry_lock = Lock()
        self._room_locks: defaultdict[int, Lock] = defaultdict(Lock)

    @property
    def default_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.hold_ttl_minutes)

    def _room_lock(self, room_id: int) -> Lock:
        with self._registry_lock:
            return self._room_locks[room_id]

    def place_hold(
        self,
        room_id: int,
        check_in: date,
        check_out: date,
        *,
        holder: str,
        ttl: Optional[timedelta] = None,
        quoted_price: float = 0.0,
    ) -> Hold:
        count_nights(check_in, check_out)
        ttl = ttl if ttl is not None else self.default_ttl
        if ttl <= timedelta(0):
            raise ValueError("hold ttl must be positive")

        with self._room_lock(room_id):
            now = self._clock()
            hold = Hold(
                hold_id=uuid4().hex,
                room_id=room_id,
                holder=holder,
                check_in=check_in,
                check_out=check_out,
                held_until=now + ttl,
                created_at=now,
                quoted_price=quoted_price,
            )
            placed = self._repository.place_hold_if_free(hold, now)

        if not placed:
            logger.warning(
                "Hold conflict | room_id=%s | check_in=%s | check_out=%s | holder=%s",
                room_id,
                check_in,
                check_out,
                holder,
            )
            raise HoldConflictError(
                f"Room {room_id} is already held or booked for {check_in} to {check_out}"
            )

        logger.info(
            "Hold placed | hold_id=%s | room_id=%s | held_until=%s",
            hold.hold_id,
            room_id,
            hold.held_until.isoformat(),
        )
        return hold

    def release_hold(self, hold_id: str) -> bool:
        """Cancel a hold; already expired, consumed or unknown holds are a no-op."""
        released = self._repository.release_hold(hold_id, self._clock())
        if released:
            logger.info("Hold released | hold_id=%s", hold_id)
        return released

    def confirm_hold(self, hold_id: str, guest_name: str) -> Booking:
        """Turn the holder's live hold into a confirmed booking."""
        hold = self._repository.get_hold(hold_id)
        if hold is None:
            raise HoldExpiredError(f"Hold {hold_id} is not active")
        with self._room_lock(hold.room_id):
            try:
                booking = self._repository.confirm_hold(hold_id, guest_name, self._clock())
            except HoldConflictError:
                logger.warning("Hold confirmation conflict | hold_id=%s", hold_id)
                raise
        logger.info(
            "Hold confirmed | hold_id=%s | booking_id=%s | room_id=%s",
            hold_id,
            booking.booking_id,
            booking.room_id,
        )
        return booking

    def purge_expired_holds(self) -> int:
        return self._repository.purge_expired_holds(self._clock())
