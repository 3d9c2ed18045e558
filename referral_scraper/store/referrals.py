"""SQLite document store for referral records."""
import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import aiosqlite

from referral_scraper.errors import DuplicateConflict, ReferralScraperError, ValidationFailure
from referral_scraper.models import ReferralRecord, as_utc, utcnow

logger = logging.getLogger(__name__)

_COLUMNS = (
    "brand",
    "code",
    "link",
    "tags",
    "post_date",
    "expiration_date",
    "is_valid",
    "last_validated",
)


def _ts(value: datetime) -> str:
    """Fixed-width UTC timestamp so that text comparison orders chronologically."""
    return as_utc(value).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _casefold(value: Optional[str]) -> Optional[str]:
    # SQLite's LIKE only folds ASCII letters
    return value.casefold() if isinstance(value, str) else value


def _to_row(fields: dict[str, Any]) -> dict[str, Any]:
    row = {}
    for key, value in fields.items():
        if key == "tags":
            row[key] = json.dumps(list(value or []), ensure_ascii=False)
        elif key in ("post_date", "expiration_date", "last_validated"):
            row[key] = _ts(value)
        elif key == "is_valid":
            row[key] = 1 if value else 0
        else:
            row[key] = value
    return row


def _from_row(row: aiosqlite.Row) -> ReferralRecord:
    return ReferralRecord(
        id=row["id"],
        brand=row["brand"],
        code=row["code"],
        link=row["link"],
        tags=json.loads(row["tags"] or "[]"),
        post_date=datetime.fromisoformat(row["post_date"]),
        expiration_date=datetime.fromisoformat(row["expiration_date"]),
        is_valid=bool(row["is_valid"]),
        last_validated=datetime.fromisoformat(row["last_validated"]),
    )


def _integrity_error(e: sqlite3.IntegrityError) -> Exception:
    message = str(e)
    if "UNIQUE" in message:
        return DuplicateConflict(message)
    return ValidationFailure(message)


class ReferralStore:
    """Referral collection backed by SQLite, one connection per operation."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    async def initialize(self) -> None:
        """Create tables and indexes if they don't exist."""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                CREATE TABLE IF NOT EXISTS referrals (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    brand TEXT NOT NULL CHECK (length(trim(brand)) > 0),
                    code TEXT,
                    link TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    post_date TEXT NOT NULL,
                    expiration_date TEXT NOT NULL,
                    is_valid INTEGER NOT NULL DEFAULT 1,
                    last_validated TEXT NOT NULL,
                    CHECK (code IS NOT NULL OR link IS NOT NULL)
                )
                """
            )
            await db.execute(
                """
                CREATE UNIQUE INDEX IF NOT EXISTS idx_referrals_brand_code_link
                ON referrals(brand, IFNULL(code, ''), IFNULL(link, ''))
                """
            )
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_referrals_post_date ON referrals(post_date DESC)"
            )
            await db.execute(
                "CREATE INDEX IF NOT EXISTS idx_referrals_expiry ON referrals(is_valid, expiration_date)"
            )
            await db.commit()
            logger.info(f"Referral store initialized at {self.db_path}")

    async def insert(
        self,
        *,
        brand: str,
        code: Optional[str],
        link: Optional[str],
        tags: list[str],
        post_date: datetime,
        expiration_date: datetime,
        is_valid: bool = True,
        last_validated: Optional[datetime] = None,
    ) -> ReferralRecord:
        """Insert a new record. Raises DuplicateConflict on a (brand, code, link) collision."""
        row = _to_row(
            {
                "brand": brand,
                "code": code,
                "link": link,
                "tags": tags,
                "post_date": post_date,
                "expiration_date": expiration_date,
                "is_valid": is_valid,
                "last_validated": last_validated or utcnow(),
            }
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)
        async with aiosqlite.connect(self.db_path) as db:
            try:
                cursor = await db.execute(
                    f"INSERT INTO referrals ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    tuple(row[c] for c in _COLUMNS),
                )
                await db.commit()
            except sqlite3.IntegrityError as e:
                raise _integrity_error(e) from e
            record_id = cursor.lastrowid

        record = await self.get(record_id)
        if record is None:
            raise ReferralScraperError(f"Inserted referral {record_id} could not be read back")
        return record

    async def get(self, record_id: int) -> Optional[ReferralRecord]:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM referrals WHERE id = ?", (record_id,))
            row = await cursor.fetchone()
            return _from_row(row) if row else None

    async def find_duplicate(
        self, brand: str, code: Optional[str], link: Optional[str]
    ) -> Optional[ReferralRecord]:
        """Find a record with the same brand whose code or link matches the candidate's."""
        conditions = []
        params: list[Any] = [brand]
        if code:
            conditions.append("code = ?")
            params.append(code)
        if link:
            conditions.append("link = ?")
            params.append(link)
        if not conditions:
            return None

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM referrals WHERE brand = ? AND ({' OR '.join(conditions)}) LIMIT 1",
                params,
            )
            row = await cursor.fetchone()
            return _from_row(row) if row else None

    async def list_referrals(
        self,
        search: Optional[str] = None,
        brand: Optional[str] = None,
        tag: Optional[str] = None,
        only_active: bool = True,
        now: Optional[datetime] = None,
    ) -> list[ReferralRecord]:
        """List records, newest post first. Active means valid and not yet expired."""
        where = []
        params: list[Any] = []
        if only_active:
            where.append("is_valid = 1 AND expiration_date > ?")
            params.append(_ts(now or utcnow()))
        if search:
            pattern = f"%{_escape_like(search.casefold())}%"
            where.append(
                "(casefold(brand) LIKE ? ESCAPE '\\' OR EXISTS "
                "(SELECT 1 FROM json_each(referrals.tags) WHERE casefold(value) LIKE ? ESCAPE '\\'))"
            )
            params.extend([pattern, pattern])
        if brand:
            where.append("casefold(brand) LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(brand.casefold())}%")
        if tag:
            where.append("EXISTS (SELECT 1 FROM json_each(referrals.tags) WHERE value = ?)")
            params.append(tag)

        query = "SELECT * FROM referrals"
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY post_date DESC, id DESC"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            await db.create_function("casefold", 1, _casefold, deterministic=True)
            cursor = await db.execute(query, params)
            return [_from_row(row) for row in await cursor.fetchall()]

    async def update(self, record_id: int, **fields: Any) -> Optional[ReferralRecord]:
        """Write back the given fields. Returns None if the record does not exist."""
        unknown = set(fields) - set(_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown referral fields: {sorted(unknown)}")
        if fields:
            row = _to_row(fields)
            assignments = ", ".join(f"{key} = ?" for key in row)
            async with aiosqlite.connect(self.db_path) as db:
                try:
                    await db.execute(
                        f"UPDATE referrals SET {assignments} WHERE id = ?",
                        (*row.values(), record_id),
                    )
                    await db.commit()
                except sqlite3.IntegrityError as e:
                    raise _integrity_error(e) from e
        return await self.get(record_id)

    async def delete(self, record_id: int) -> bool:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("DELETE FROM referrals WHERE id = ?", (record_id,))
            await db.commit()
            return cursor.rowcount > 0

    async def find_expired(self, now: datetime) -> list[ReferralRecord]:
        """Records still marked valid whose expiration is strictly before now."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM referrals WHERE is_valid = 1 AND expiration_date < ? ORDER BY id",
                (_ts(now),),
            )
            return [_from_row(row) for row in await cursor.fetchall()]

    async def count(self) -> int:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM referrals")
            row = await cursor.fetchone()
            return row[0]
