import logging
from pathlib import Path

import aiosqlite

from tablebook.models.enums import ReservationStatus
from tablebook.models.reservation import Reservation

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Async SQLite store for reservations created here and incidental UI flags.

    All SQL in the application lives in this class. Other layers
    call typed methods that accept and return Pydantic models.
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = str(db_path)
        self.connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open connection, enable WAL mode, execute schema."""
        self.connection = await aiosqlite.connect(self.db_path)
        self.connection.row_factory = aiosqlite.Row
        schema_path = Path(__file__).parent / "schema.sql"
        await self.connection.executescript(schema_path.read_text())
        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.commit()
        logger.info("Database initialized at %s", self.db_path)

    async def close(self) -> None:
        """Close the database connection."""
        if self.connection:
            await self.connection.close()
            self.connection = None

    async def __aenter__(self) -> "DatabaseManager":
        await self.initialize()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        await self.close()

    async def execute(self, sql: str, params: tuple = ()) -> aiosqlite.Cursor:
        """Execute a single SQL statement and commit."""
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        await self.connection.commit()
        return cursor

    async def fetch_one(self, sql: str, params: tuple = ()) -> dict | None:
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_all(self, sql: str, params: tuple = ()) -> list[dict]:
        assert self.connection is not None
        cursor = await self.connection.execute(sql, params)
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    # ── Reservations ──────────────────────────────────────────────────────

    def _row_to_reservation(self, row: dict) -> Reservation:
        return Reservation(
            id=row["id"],
            confirmation_code=row["confirmation_code"],
            status=ReservationStatus(row["status"]),
            date_time=row["date_time"],
            party_size=row["party_size"],
            table_id=row["table_id"],
            restaurant_id=row["restaurant_id"],
            restaurant_name=row["restaurant_name"],
            guest_name=row["guest_name"],
            guest_email=row["guest_email"],
            guest_phone=row["guest_phone"],
            special_requests=row["special_requests"],
            occasion_type=row["occasion_type"],
        )

    async def save_reservation(self, reservation: Reservation) -> None:
        await self.execute(
            """INSERT INTO reservations
               (id, confirmation_code, status, date_time, party_size, table_id,
                restaurant_id, restaurant_name, guest_name, guest_email,
                guest_phone, special_requests, occasion_type)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
               ON CONFLICT(id) DO UPDATE SET
                   confirmation_code = excluded.confirmation_code,
                   status = excluded.status,
                   date_time = excluded.date_time,
                   party_size = excluded.party_size,
                   table_id = excluded.table_id,
                   updated_at = CURRENT_TIMESTAMP""",
            (
                reservation.id,
                reservation.confirmation_code,
                reservation.status.value,
                reservation.date_time.isoformat(),
                reservation.party_size,
                reservation.table_id,
                reservation.restaurant_id,
                reservation.restaurant_name,
                reservation.guest_name,
                reservation.guest_email,
                reservation.guest_phone,
                reservation.special_requests,
                reservation.occasion_type,
            ),
        )

    async def get_reservation(self, reservation_id: str) -> Reservation | None:
        row = await self.fetch_one(
            "SELECT * FROM reservations WHERE id = ?", (reservation_id,)
        )
        if not row:
            return None
        return self._row_to_reservation(row)

    async def get_reservation_by_code(self, confirmation_code: str) -> Reservation | None:
        row = await self.fetch_one(
            "SELECT * FROM reservations WHERE UPPER(confirmation_code) = ?",
            (confirmation_code.upper(),),
        )
        if not row:
            return None
        return self._row_to_reservation(row)

    async def list_reservations(self) -> list[Reservation]:
        rows = await self.fetch_all("SELECT * FROM reservations ORDER BY date_time")
        return [self._row_to_reservation(r) for r in rows]

    async def update_reservation_status(
        self, reservation_id: str, status: ReservationStatus
    ) -> bool:
        """Returns True if a local row was updated."""
        cursor = await self.execute(
            """UPDATE reservations
               SET status = ?, updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (status.value, reservation_id),
        )
        return cursor.rowcount > 0

    # ── UI flags ──────────────────────────────────────────────────────────

    async def set_flag(self, key: str, value: str = "1") -> None:
        await self.execute(
            """INSERT INTO ui_flags (key, value) VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET
                   value = excluded.value,
                   updated_at = CURRENT_TIMESTAMP""",
            (key, value),
        )

    async def get_flag(self, key: str) -> str | None:
        row = await self.fetch_one("SELECT value FROM ui_flags WHERE key = ?", (key,))
        return row["value"] if row else None
