"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Sequence

from allocation_engine.domain.errors import (
    HoldConflictError,
    HoldExpiredError,
    RepositoryError,
    RoomNotFoundError,
)
from allocation_engine.domain.models import (
    BOOKING_STATUS_CANCELLED,
    HOLD_STATUS_ACTIVE,
    HOLD_STATUS_CONSUMED,
    HOLD_STATUS_RELEASED,
    Booking,
    Hold,
    Room,
    RoomType,
    SpecialRate,
)
from allocation_engine.repository.base import (
    BookingFilter,
    RoomFilter,
    RoomTypeFilter,
    live_overlapping_holds,
    room_sort_key,
    validate_room_patch,
)
from allocation_engine.utils.config import Settings, get_settings
from allocation_engine.utils.logger import get_logger


logger = get_logger(__name__)

_ROOM_SCALAR_FIELDS = (
    "room_number",
    "property_id",
    "room_type_id",
    "floor",
    "wing",
    "wheelchair_accessible",
    "condition",
    "status",
    "cleaning_status",
    "is_active",
    "is_bookable",
    "maintenance_issue_count",
    "housekeeping_issue_count",
    "feedback_rating",
    "base_rate",
    "current_rate",
    "seasonal_multiplier",
)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: str) -> date:
    return date.fromisoformat(value)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(
            self._db_path,
            timeout=self._settings.sqlite_timeout_seconds,
        )
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    @contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside one transaction.

        `immediate=True` takes the database write lock up front so the reads
        made inside the block cannot be invalidated by a concurrent writer.
        """
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            logger.exception("Could not open database at %s", self._db_path)
            raise RepositoryError(f"Database connection failed: {exc}") from exc
        try:
            if immediate:
                conn.execute("BEGIN IMMEDIATE;")
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.exception("Database operation failed")
            raise RepositoryError(f"Database operation failed: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        with self._transaction() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS RoomTypes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    property_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    max_occupancy INTEGER NOT NULL CHECK (max_occupancy > 0),
                    base_price REAL NOT NULL CHECK (base_price >= 0),
                    room_size REAL NOT NULL DEFAULT 0,
                    size_unit TEXT NOT NULL DEFAULT 'sqft',
                    amenities TEXT NOT NULL DEFAULT '[]',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_bookable INTEGER NOT NULL DEFAULT 1
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Rooms (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_number TEXT NOT NULL,
                    property_id TEXT NOT NULL,
                    room_type_id INTEGER NOT NULL,
                    floor INTEGER NOT NULL,
                    wing TEXT,
                    views TEXT NOT NULL DEFAULT '[]',
                    amenities TEXT NOT NULL DEFAULT '[]',
                    wheelchair_accessible INTEGER NOT NULL DEFAULT 0,
                    condition TEXT NOT NULL DEFAULT 'good',
                    status TEXT NOT NULL DEFAULT 'available',
                    cleaning_status TEXT NOT NULL DEFAULT 'clean',
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_bookable INTEGER NOT NULL DEFAULT 1,
                    maintenance_issue_count INTEGER NOT NULL DEFAULT 0,
                    housekeeping_issue_count INTEGER NOT NULL DEFAULT 0,
                    last_maintenance TEXT,
                    last_cleaned TEXT,
                    feedback_rating REAL NOT NULL DEFAULT 0,
                    base_rate REAL NOT NULL DEFAULT 0,
                    current_rate REAL,
                    seasonal_multiplier REAL NOT NULL DEFAULT 1.0,
                    UNIQUE (property_id, room_number),
                    FOREIGN KEY (room_type_id) REFERENCES RoomTypes(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS SpecialRates (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    rate REAL NOT NULL CHECK (rate >= 0),
                    valid_from TEXT NOT NULL,
                    valid_to TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    FOREIGN KEY (room_id) REFERENCES Rooms(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS Bookings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    room_id INTEGER NOT NULL,
                    property_id TEXT NOT NULL,
                    check_in TEXT NOT NULL,
                    check_out TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    guest_name TEXT NOT NULL DEFAULT '',
                    total_price REAL NOT NULL DEFAULT 0,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                    CHECK (check_out > check_in),
                    FOREIGN KEY (room_id) REFERENCES Rooms(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS RoomHolds (
                    hold_id TEXT PRIMARY KEY,
                    room_id INTEGER NOT NULL,
                    holder TEXT NOT NULL,
                    check_in TEXT NOT NULL,
                    check_out TEXT NOT NULL,
                    held_until TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    quoted_price REAL NOT NULL DEFAULT 0,
                    status TEXT NOT NULL DEFAULT 'active',
                    FOREIGN KEY (room_id) REFERENCES Rooms(id)
                );
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_bookings_room_dates
                ON Bookings(room_id, check_in, check_out);
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_rooms_property_type
                ON Rooms(property_id, room_type_id);
                """
            )
            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_holds_room_status
                ON RoomHolds(room_id, status);
                """
            )
        logger.info("Database initialized at %s", self._db_path)

    def seed_demo_inventory(self) -> int:
        """Seed a small demo property only when the Rooms table is empty."""
        with self._transaction() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM Rooms;").fetchone()
            if int(row["count"]) > 0:
                logger.info("Inventory already present; skipping demo seed")
                return 0

        property_id = self._settings.demo_property_id
        standard = self.add_room_type(
            property_id=property_id,
            name="Standard Room",
            category="standard",
            max_occupancy=2,
            base_price=1000.0,
            room_size=220.0,
            amenities=frozenset({"wifi", "tv"}),
        )
        deluxe = self.add_room_type(
            property_id=property_id,
            name="Deluxe Room",
            category="deluxe",
            max_occupancy=3,
            base_price=1500.0,
            room_size=320.0,
            amenities=frozenset({"wifi", "tv", "minibar", "balcony"}),
        )
        suite = self.add_room_type(
            property_id=property_id,
            name="Garden Suite",
            category="suite",
            max_occupancy=4,
            base_price=2500.0,
            room_size=540.0,
            amenities=frozenset({"wifi", "tv", "minibar", "balcony", "jacuzzi", "kitchen"}),
        )
        today = datetime.now(timezone.utc).date()
        seeded = [
            self.add_room(room_number="101", room_type_id=standard, floor=1, base_rate=1000.0,
                          wing="east", amenities=frozenset({"ac", "tv"}), condition="good"),
            self.add_room(room_number="102", room_type_id=standard, floor=1, base_rate=1000.0,
                          wing="west", amenities=frozenset({"ac", "tv"}), condition="excellent",
                          cleaning_status="inspected", wheelchair_accessible=True),
            self.add_room(room_number="201", room_type_id=deluxe, floor=2, base_rate=1500.0,
                          wing="east", views=("garden",), amenities=frozenset({"ac", "tv", "balcony", "minibar"}),
                          seasonal_multiplier=1.1, feedback_rating=4.5),
            self.add_room(room_number="202", room_type_id=deluxe, floor=2, base_rate=1500.0,
                          wing="west", views=("sea",), amenities=frozenset({"ac", "tv", "balcony", "minibar"}),
                          special_rates=(
                              SpecialRate(
                                  name="Long stay offer",
                                  rate=1300.0,
                                  valid_from=today,
                                  valid_to=today + timedelta(days=60),
                              ),
                          )),
            self.add_room(room_number="301", room_type_id=suite, floor=3, base_rate=2500.0,
                          views=("sea", "garden"), amenities=frozenset({"ac", "tv", "jacuzzi", "kitchen", "safe"}),
                          condition="excellent", feedback_rating=4.8),
        ]
        logger.info("Demo inventory seeded | property_id=%s | rooms=%s", property_id, len(seeded))
        return len(seeded)

    def add_room_type(
        self,
        *,
        property_id: str,
        name: str,
        category: str,
        max_occupancy: int,
        base_price: float,
        room_size: float = 0.0,
        size_unit: str = "sqft",
        amenities: frozenset[str] = frozenset(),
        is_active: bool = True,
        is_bookable: bool = True,
    ) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO RoomTypes (
                    property_id, name, category, max_occupancy, base_price,
                    room_size, size_unit, amenities, is_active, is_bookable
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                """,
                (
                    property_id,
                    name,
                    category,
                    max_occupancy,
                    base_price,
                    room_size,
                    size_unit,
                    json.dumps(sorted(amenities)),
                    int(is_active),
                    int(is_bookable),
                ),
            )
            return int(cursor.lastrowid)

    def add_room(
        self,
        *,
        room_number: str,
        room_type_id: int,
        floor: int,
        base_rate: float,
        special_rates: Sequence[SpecialRate] = (),
        **attributes: Any,
    ) -> int:
        """Insert a room; `attributes` are any optional `Room` fields."""
        room_type = self.get_room_type(room_type_id)
        if room_type is None:
            raise ValueError(f"Room type {room_type_id} does not exist")
        room = Room(
            room_id=0,
            room_number=room_number,
            property_id=room_type.property_id,
            room_type_id=room_type_id,
            floor=floor,
            base_rate=base_rate,
            **attributes,
        )
        values = [getattr(room, name) for name in _ROOM_SCALAR_FIELDS]
        values = [int(v) if isinstance(v, bool) else v for v in values]
        with self._transaction() as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO Rooms (
                    {", ".join(_ROOM_SCALAR_FIELDS)},
                    views, amenities, last_maintenance, last_cleaned
                )
                VALUES ({", ".join("?" for _ in _ROOM_SCALAR_FIELDS)}, ?, ?, ?, ?);
                """,
                (
                    *values,
                    json.dumps(list(room.views)),
                    json.dumps(sorted(room.amenities)),
                    _iso(room.last_maintenance),
                    _iso(room.last_cleaned),
                ),
            )
            room_id = int(cursor.lastrowid)
            conn.executemany(
                """
                INSERT INTO SpecialRates (room_id, name, rate, valid_from, valid_to, is_active)
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                [
                    (
                        room_id,
                        rate.name,
                        rate.rate,
                        rate.valid_from.isoformat(),
                        rate.valid_to.isoformat(),
                        int(rate.is_active),
                    )
                    for rate in special_rates
                ],
            )
            return room_id

    def add_booking(
        self,
        *,
        room_id: int,
        check_in: date,
        check_out: date,
        status: str = "confirmed",
        guest_name: str = "",
        total_price: float = 0.0,
    ) -> int:
        with self._transaction() as conn:
            return self._insert_booking(
                conn,
                room_id=room_id,
                check_in=check_in,
                check_out=check_out,
                status=status,
                guest_name=guest_name,
                total_price=total_price,
            )

    def _insert_booking(
        self,
        conn: sqlite3.Connection,
        *,
        room_id: int,
        check_in: date,
        check_out: date,
        status: str,
        guest_name: str,
        total_price: float,
    ) -> int:
        row = conn.execute("SELECT property_id FROM Rooms WHERE id = ?;", (room_id,)).fetchone()
        if row is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        cursor = conn.execute(
            """
            INSERT INTO Bookings (
                room_id, property_id, check_in, check_out, status, guest_name, total_price
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                room_id,
                str(row["property_id"]),
                check_in.isoformat(),
                check_out.isoformat(),
                status,
                guest_name,
                total_price,
            ),
        )
        return int(cursor.lastrowid)

    @staticmethod
    def _row_to_room_type(row: sqlite3.Row) -> RoomType:
        return RoomType(
            room_type_id=int(row["id"]),
            property_id=str(row["property_id"]),
            name=str(row["name"]),
            category=str(row["category"]),
            max_occupancy=int(row["max_occupancy"]),
            base_price=float(row["base_price"]),
            room_size=float(row["room_size"]),
            size_unit=str(row["size_unit"]),
            amenities=frozenset(json.loads(row["amenities"])),
            is_active=bool(row["is_active"]),
            is_bookable=bool(row["is_bookable"]),
        )

    @staticmethod
    def _row_to_room(row: sqlite3.Row, special_rates: tuple[SpecialRate, ...]) -> Room:
        return Room(
            room_id=int(row["id"]),
            room_number=str(row["room_number"]),
            property_id=str(row["property_id"]),
            room_type_id=int(row["room_type_id"]),
            floor=int(row["floor"]),
            base_rate=float(row["base_rate"]),
            wing=row["wing"],
            views=tuple(json.loads(row["views"])),
            amenities=frozenset(json.loads(row["amenities"])),
            wheelchair_accessible=bool(row["wheelchair_accessible"]),
            condition=str(row["condition"]),
            status=str(row["status"]),
            cleaning_status=str(row["cleaning_status"]),
            is_active=bool(row["is_active"]),
            is_bookable=bool(row["is_bookable"]),
            maintenance_issue_count=int(row["maintenance_issue_count"]),
            housekeeping_issue_count=int(row["housekeeping_issue_count"]),
            last_maintenance=_parse_datetime(row["last_maintenance"]),
            last_cleaned=_parse_datetime(row["last_cleaned"]),
            feedback_rating=float(row["feedback_rating"]),
            current_rate=float(row["current_rate"]) if row["current_rate"] is not None else None,
            seasonal_multiplier=float(row["seasonal_multiplier"]),
            special_rates=special_rates,
            room_type_name=row["room_type_name"],
            room_type_category=row["room_type_category"],
        )

    @staticmethod
    def _row_to_booking(row: sqlite3.Row) -> Booking:
        return Booking(
            booking_id=int(row["id"]),
            room_id=int(row["room_id"]),
            property_id=str(row["property_id"]),
            check_in=_parse_date(row["check_in"]),
            check_out=_parse_date(row["check_out"]),
            status=str(row["status"]),
            guest_name=str(row["guest_name"]),
            total_price=float(row["total_price"]),
        )

    @staticmethod
    def _row_to_hold(row: sqlite3.Row) -> Hold:
        return Hold(
            hold_id=str(row["hold_id"]),
            room_id=int(row["room_id"]),
            holder=str(row["holder"]),
            check_in=_parse_date(row["check_in"]),
            check_out=_parse_date(row["check_out"]),
            held_until=datetime.fromisoformat(row["held_until"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            quoted_price=float(row["quoted_price"]),
            status=str(row["status"]),
        )

    def find_room_types(self, room_type_filter: RoomTypeFilter) -> list[RoomType]:
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM RoomTypes WHERE property_id = ? ORDER BY id ASC;",
                (room_type_filter.property_id,),
            ).fetchall()
        room_types = [self._row_to_room_type(row) for row in rows]
        return [rt for rt in room_types if room_type_filter.matches(rt)]

    def get_room_type(self, room_type_id: int) -> Optional[RoomType]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM RoomTypes WHERE id = ?;",
                (room_type_id,),
            ).fetchone()
        return self._row_to_room_type(row) if row is not None else None

    def _load_rooms(self, conn: sqlite3.Connection, where: str, params: tuple) -> list[Room]:
        rows = conn.execute(
            f"""
            SELECT r.*, rt.name AS room_type_name, rt.category AS room_type_category
            FROM Rooms AS r
            LEFT JOIN RoomTypes AS rt ON rt.id = r.room_type_id
            WHERE {where}
            ORDER BY r.floor ASC, r.room_number ASC;
            """,
            params,
        ).fetchall()
        if not rows:
            return []
        room_ids = [int(row["id"]) for row in rows]
        placeholders = ",".join("?" for _ in room_ids)
        rate_rows = conn.execute(
            f"""
            SELECT room_id, name, rate, valid_from, valid_to, is_active
            FROM SpecialRates
            WHERE room_id IN ({placeholders})
            ORDER BY id ASC;
            """,
            tuple(room_ids),
        ).fetchall()
        rates_by_room: dict[int, list[SpecialRate]] = {}
        for rate_row in rate_rows:
            rates_by_room.setdefault(int(rate_row["room_id"]), []).append(
                SpecialRate(
                    name=str(rate_row["name"]),
                    rate=float(rate_row["rate"]),
                    valid_from=_parse_date(rate_row["valid_from"]),
                    valid_to=_parse_date(rate_row["valid_to"]),
                    is_active=bool(rate_row["is_active"]),
                )
            )
        return [
            self._row_to_room(row, tuple(rates_by_room.get(int(row["id"]), ())))
            for row in rows
        ]

    def find_rooms(self, room_filter: RoomFilter) -> list[Room]:
        with self._transaction() as conn:
            rooms = self._load_rooms(conn, "r.property_id = ?", (room_filter.property_id,))
        return sorted((room for room in rooms if room_filter.matches(room)), key=room_sort_key)

    def get_room(self, room_id: int) -> Optional[Room]:
        with self._transaction() as conn:
            rooms = self._load_rooms(conn, "r.id = ?", (room_id,))
        return rooms[0] if rooms else None

    def update_room(self, room_id: int, patch: Mapping[str, Any]) -> Room:
        validate_room_patch(patch)
        if patch:
            assignments = ", ".join(f"{name} = ?" for name in patch)
            values = []
            for value in patch.values():
                if isinstance(value, bool):
                    value = int(value)
                elif isinstance(value, datetime):
                    value = value.isoformat()
                values.append(value)
            with self._transaction() as conn:
                cursor = conn.execute(
                    f"UPDATE Rooms SET {assignments} WHERE id = ?;",
                    (*values, room_id),
                )
                if cursor.rowcount == 0:
                    raise RoomNotFoundError(f"Room {room_id} not found")
        room = self.get_room(room_id)
        if room is None:
            raise RoomNotFoundError(f"Room {room_id} not found")
        logger.info("Room updated | room_id=%s | fields=%s", room_id, sorted(patch))
        return room

    def find_bookings(self, booking_filter: BookingFilter) -> list[Booking]:
        clauses: list[str] = []
        params: list[Any] = []
        if booking_filter.room_id is not None:
            clauses.append("room_id = ?")
            params.append(booking_filter.room_id)
        if booking_filter.property_id is not None:
            clauses.append("property_id = ?")
            params.append(booking_filter.property_id)
        if not booking_filter.include_cancelled:
            clauses.append("status != ?")
            params.append(BOOKING_STATUS_CANCELLED)
        if booking_filter.overlapping is not None:
            start, end = booking_filter.overlapping
            clauses.append("check_in < ? AND check_out > ?")
            params.extend([end.isoformat(), start.isoformat()])
        where = " AND ".join(clauses) if clauses else "1 = 1"
        with self._transaction() as conn:
            rows = conn.execute(
                f"SELECT * FROM Bookings WHERE {where} ORDER BY check_in ASC, id ASC;",
                tuple(params),
            ).fetchall()
        return [self._row_to_booking(row) for row in rows]

    def _live_room_holds(self, conn: sqlite3.Connection, room_id: int, now: datetime) -> list[Hold]:
        rows = conn.execute(
            """
            SELECT * FROM RoomHolds
            WHERE room_id = ? AND status = ?
            ORDER BY created_at ASC;
            """,
            (room_id, HOLD_STATUS_ACTIVE),
        ).fetchall()
        return [hold for hold in map(self._row_to_hold, rows) if hold.is_live(now)]

    @staticmethod
    def _delete_stale_holds(
        conn: sqlite3.Connection,
        now: datetime,
        room_id: Optional[int] = None,
    ) -> int:
        """Delete released, consumed and expired holds, optionally for one room."""
        room_clause = "" if room_id is None else " AND room_id = ?"
        room_params: tuple = () if room_id is None else (room_id,)
        expired_ids = [
            (str(row["hold_id"]),)
            for row in conn.execute(
                f"SELECT hold_id, held_until FROM RoomHolds WHERE status = ?{room_clause};",
                (HOLD_STATUS_ACTIVE, *room_params),
            ).fetchall()
            if datetime.fromisoformat(row["held_until"]) <= now
        ]
        conn.executemany("DELETE FROM RoomHolds WHERE hold_id = ?;", expired_ids)
        cursor = conn.execute(
            f"DELETE FROM RoomHolds WHERE status != ?{room_clause};",
            (HOLD_STATUS_ACTIVE, *room_params),
        )
        return len(expired_ids) + cursor.rowcount

    def read_holds(self, room_id: int, now: datetime) -> list[Hold]:
        """Return holds on the room that are still live at `now`."""
        with self._transaction() as conn:
            return self._live_room_holds(conn, room_id, now)

    def get_hold(self, hold_id: str) -> Optional[Hold]:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM RoomHolds WHERE hold_id = ?;",
                (hold_id,),
            ).fetchone()
        return self._row_to_hold(row) if row is not None else None

    @staticmethod
    def _upsert_hold(conn: sqlite3.Connection, hold: Hold) -> None:
        conn.execute(
            """
            INSERT INTO RoomHolds (
                hold_id, room_id, holder, check_in, check_out,
                held_until, created_at, quoted_price, status
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(hold_id) DO UPDATE SET
                held_until = excluded.held_until,
                quoted_price = excluded.quoted_price,
                status = excluded.status;
            """,
            (
                hold.hold_id,
                hold.room_id,
                hold.holder,
                hold.check_in.isoformat(),
                hold.check_out.isoformat(),
                hold.held_until.isoformat(),
                hold.created_at.isoformat(),
                hold.quoted_price,
                hold.status,
            ),
        )

    def save_hold(self, hold: Hold) -> None:
        with self._transaction() as conn:
            self._upsert_hold(conn, hold)

    @staticmethod
    def _has_overlapping_booking(
        conn: sqlite3.Connection,
        room_id: int,
        check_in: date,
        check_out: date,
    ) -> bool:
        row = conn.execute(
            """
            SELECT 1
            FROM Bookings
            WHERE room_id = ?
              AND status != ?
              AND check_in < ?
              AND check_out > ?
            LIMIT 1;
            """,
            (room_id, BOOKING_STATUS_CANCELLED, check_out.isoformat(), check_in.isoformat()),
        ).fetchone()
        return row is not None

    def place_hold_if_free(self, hold: Hold, now: datetime) -> bool:
        """Insert `hold` only if nothing live or booked overlaps it."""
        with self._transaction(immediate=True) as conn:
            room_holds = self._live_room_holds(conn, hold.room_id, now)
            if live_overlapping_holds(room_holds, hold.check_in, hold.check_out, now):
                return False
            if self._has_overlapping_booking(conn, hold.room_id, hold.check_in, hold.check_out):
                return False
            # the new hold supersedes whatever is no longer live on this room
            self._delete_stale_holds(conn, now, room_id=hold.room_id)
            self._upsert_hold(conn, hold)
            return True

    def confirm_hold(self, hold_id: str, guest_name: str, now: datetime) -> Booking:
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                "SELECT * FROM RoomHolds WHERE hold_id = ?;",
                (hold_id,),
            ).fetchone()
            hold = self._row_to_hold(row) if row is not None else None
            if hold is None or not hold.is_live(now):
                raise HoldExpiredError(f"Hold {hold_id} is not active")
            others = live_overlapping_holds(
                self._live_room_holds(conn, hold.room_id, now),
                hold.check_in,
                hold.check_out,
                now,
                exclude_hold_id=hold_id,
            )
            if others or self._has_overlapping_booking(
                conn, hold.room_id, hold.check_in, hold.check_out
            ):
                raise HoldConflictError(f"Room {hold.room_id} is no longer free for hold {hold_id}")
            booking_id = self._insert_booking(
                conn,
                room_id=hold.room_id,
                check_in=hold.check_in,
                check_out=hold.check_out,
                status="confirmed",
                guest_name=guest_name,
                total_price=hold.quoted_price,
            )
            self._upsert_hold(conn, replace(hold, status=HOLD_STATUS_CONSUMED))
            booking_row = conn.execute(
                "SELECT * FROM Bookings WHERE id = ?;",
                (booking_id,),
            ).fetchone()
            return self._row_to_booking(booking_row)

    def release_hold(self, hold_id: str, now: datetime) -> bool:
        with self._transaction(immediate=True) as conn:
            row = conn.execute(
                "SELECT * FROM RoomHolds WHERE hold_id = ?;",
                (hold_id,),
            ).fetchone()
            if row is None:
                return False
            hold = self._row_to_hold(row)
            if not hold.is_live(now):
                return False
            self._upsert_hold(conn, replace(hold, status=HOLD_STATUS_RELEASED))
            return True

    def purge_expired_holds(self, now: datetime) -> int:
        """Delete every hold row that is no longer live; return how many went."""
        with self._transaction(immediate=True) as conn:
            purged = self._delete_stale_holds(conn, now)
        if purged:
            logger.info("Purged %s stale holds", purged)
        return purged

    def count_bookings(self, room_id: Optional[int] = None) -> int:
        """Return non-cancelled booking count for diagnostics and tests."""
        return len(self.find_bookings(BookingFilter(room_id=room_id)))
