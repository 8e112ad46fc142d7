"""SQLite claim index: claims, channels and locally cached files."""
from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from claimserve.identifiers import CHANNEL_CHAR, is_valid_claim_id
from claimserve.logger import get_logger
from claimserve.models import (
    ClaimRecord,
    FileRecord,
    FileLookup,
    NotFound,
)

logger = get_logger(__name__)

_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS claims (
    claim_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    title TEXT,
    description TEXT,
    thumbnail TEXT,
    content_type TEXT,
    nsfw INTEGER,
    channel_name TEXT,
    certificate_id TEXT,
    height INTEGER,
    effective_amount REAL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_claims_name ON claims (name);
CREATE INDEX IF NOT EXISTS idx_claims_certificate ON claims (certificate_id);

CREATE TABLE IF NOT EXISTS channels (
    channel_id TEXT PRIMARY KEY,
    channel_name TEXT NOT NULL,
    height INTEGER,
    effective_amount REAL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_channels_name ON channels (channel_name);

CREATE TABLE IF NOT EXISTS files (
    claim_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    file_path TEXT NOT NULL,
    file_type TEXT,
    created_at TEXT NOT NULL
);
"""

_CLAIM_COLS = [
    "claim_id", "name", "title", "description", "thumbnail", "content_type",
    "nsfw", "channel_name", "certificate_id", "height", "effective_amount",
]


def _connect(db_path: Path) -> sqlite3.Connection:
    con = sqlite3.connect(str(db_path))
    con.row_factory = sqlite3.Row
    return con


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def shortest_unique_prefix(long_id: str, other_ids: Iterable[str]) -> str:
    """Shortest prefix of long_id that no other id starts with."""
    others = [other for other in other_ids if other != long_id]
    for length in range(1, len(long_id) + 1):
        prefix = long_id[:length]
        if not any(other.startswith(prefix) for other in others):
            return prefix
    return long_id


def init_db(db_path: Path) -> None:
    """Create the claim index tables if they don't exist."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = _connect(db_path)
    try:
        con.executescript(_CREATE_TABLES)
        con.commit()
    finally:
        con.close()


def save_claims(db_path: Path, claims: List[ClaimRecord]) -> None:
    """Upsert claims. Claims named "@..." are channel claims and also go to channels."""
    placeholders = ", ".join("?" for _ in _CLAIM_COLS)
    col_names = ", ".join(_CLAIM_COLS)
    claim_sql = (
        f"INSERT OR REPLACE INTO claims ({col_names}, created_at) "
        f"VALUES ({placeholders}, ?)"
    )
    channel_sql = (
        "INSERT OR REPLACE INTO channels "
        "(channel_id, channel_name, height, effective_amount, created_at) "
        "VALUES (?, ?, ?, ?, ?)"
    )

    now = _now()
    con = _connect(db_path)
    try:
        for claim in claims:
            row = [getattr(claim, col) for col in _CLAIM_COLS]
            con.execute(claim_sql, (*row, now))
            if claim.name.startswith(CHANNEL_CHAR):
                con.execute(
                    channel_sql,
                    (claim.claim_id, claim.name, claim.height, claim.effective_amount, now),
                )
        con.commit()
    finally:
        con.close()


def save_file(db_path: Path, record: FileRecord) -> None:
    con = _connect(db_path)
    try:
        con.execute(
            "INSERT OR REPLACE INTO files (claim_id, name, file_path, file_type, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (record.claim_id, record.name, record.file_path, record.file_type, _now()),
        )
        con.commit()
    finally:
        con.close()


def _claim_from_row(row: sqlite3.Row) -> ClaimRecord:
    r = dict(row)
    r.pop("created_at", None)
    r["nsfw"] = bool(r.get("nsfw"))
    for key in ("title", "description"):
        r[key] = r.get(key) or ""
    r["height"] = r.get("height") or 0
    r["effective_amount"] = r.get("effective_amount") or 0.0
    return ClaimRecord(**r)


def get_claim(db_path: Path, claim_id: str, name: str) -> Optional[ClaimRecord]:
    con = _connect(db_path)
    try:
        row = con.execute(
            "SELECT * FROM claims WHERE claim_id = ? AND name = ?", (claim_id, name)
        ).fetchone()
    finally:
        con.close()
    return _claim_from_row(row) if row else None


def get_file(db_path: Path, claim_id: str, name: str) -> Optional[FileRecord]:
    con = _connect(db_path)
    try:
        row = con.execute(
            "SELECT claim_id, name, file_path, file_type FROM files "
            "WHERE claim_id = ? AND name = ?",
            (claim_id, name),
        ).fetchone()
    finally:
        con.close()
    return FileRecord(**dict(row)) if row else None


def get_local_file(db_path: Path, claim_id: str, name: str) -> FileLookup:
    """The file record, if its file is still on disk."""
    record = get_file(db_path, claim_id, name)
    if record is None:
        return NotFound.file
    if not Path(record.file_path).is_file():
        logger.warning("File record for %s#%s points at missing %s", name, claim_id, record.file_path)
        return NotFound.file
    return record


def get_winning_claim_id(db_path: Path, name: str) -> Optional[str]:
    """Highest effective amount wins; the earliest claim breaks ties."""
    con = _connect(db_path)
    try:
        row = con.execute(
            "SELECT claim_id FROM claims WHERE name = ? "
            "ORDER BY effective_amount DESC, height ASC LIMIT 1",
            (name,),
        ).fetchone()
    finally:
        con.close()
    return row["claim_id"] if row else None


def get_long_claim_id(db_path: Path, name: str, short_id: str) -> Optional[str]:
    con = _connect(db_path)
    try:
        row = con.execute(
            "SELECT claim_id FROM claims WHERE name = ? AND substr(claim_id, 1, ?) = ? "
            "ORDER BY height ASC LIMIT 1",
            (name, len(short_id), short_id),
        ).fetchone()
    finally:
        con.close()
    return row["claim_id"] if row else None


def get_short_claim_id(db_path: Path, long_id: str, name: str) -> str:
    con = _connect(db_path)
    try:
        rows = con.execute("SELECT claim_id FROM claims WHERE name = ?", (name,)).fetchall()
    finally:
        con.close()
    return shortest_unique_prefix(long_id, (row["claim_id"] for row in rows))


def get_long_channel_id(
    db_path: Path, channel_name: str, channel_id: Optional[str]
) -> Optional[str]:
    """
    Resolve a channel to its long id.

    - full id: must exist under that channel name
    - short id: earliest channel with that name whose id starts with it
    - no id: the channel with the highest effective amount
    """
    if channel_id and is_valid_claim_id(channel_id):
        sql = "SELECT channel_id FROM channels WHERE channel_name = ? AND channel_id = ?"
        params: tuple = (channel_name, channel_id)
    elif channel_id:
        sql = (
            "SELECT channel_id FROM channels "
            "WHERE channel_name = ? AND substr(channel_id, 1, ?) = ? "
            "ORDER BY height ASC LIMIT 1"
        )
        params = (channel_name, len(channel_id), channel_id)
    else:
        sql = (
            "SELECT channel_id FROM channels WHERE channel_name = ? "
            "ORDER BY effective_amount DESC, height ASC LIMIT 1"
        )
        params = (channel_name,)

    con = _connect(db_path)
    try:
        row = con.execute(sql, params).fetchone()
    finally:
        con.close()
    return row["channel_id"] if row else None


def get_short_channel_id(db_path: Path, long_channel_id: str, channel_name: str) -> str:
    con = _connect(db_path)
    try:
        rows = con.execute(
            "SELECT channel_id FROM channels WHERE channel_name = ?", (channel_name,)
        ).fetchall()
    finally:
        con.close()
    return shortest_unique_prefix(long_channel_id, (row["channel_id"] for row in rows))


def get_claim_id_in_channel(
    db_path: Path, long_channel_id: str, claim_name: str
) -> Optional[str]:
    con = _connect(db_path)
    try:
        row = con.execute(
            "SELECT claim_id FROM claims WHERE name = ? AND certificate_id = ? "
            "ORDER BY height ASC LIMIT 1",
            (claim_name, long_channel_id),
        ).fetchone()
    finally:
        con.close()
    return row["claim_id"] if row else None


def get_channel_claims(db_path: Path, long_channel_id: str) -> List[ClaimRecord]:
    """All claims signed by a channel, newest first."""
    con = _connect(db_path)
    try:
        rows = con.execute(
            "SELECT * FROM claims WHERE certificate_id = ? ORDER BY height DESC",
            (long_channel_id,),
        ).fetchall()
    finally:
        con.close()
    return [_claim_from_row(row) for row in rows]


class SqliteClaimIndex:
    """Async claim index over the SQLite tables; queries run in worker threads."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def init(self) -> None:
        init_db(self.db_path)

    async def get_long_channel_id(
        self, channel_name: str, channel_id: Optional[str]
    ) -> Optional[str]:
        return await asyncio.to_thread(get_long_channel_id, self.db_path, channel_name, channel_id)

    async def get_short_channel_id(self, long_channel_id: str, channel_name: str) -> str:
        return await asyncio.to_thread(
            get_short_channel_id, self.db_path, long_channel_id, channel_name
        )

    async def get_channel_claims(self, long_channel_id: str) -> List[ClaimRecord]:
        return await asyncio.to_thread(get_channel_claims, self.db_path, long_channel_id)

    async def get_claim_id_in_channel(
        self, long_channel_id: str, claim_name: str
    ) -> Optional[str]:
        return await asyncio.to_thread(
            get_claim_id_in_channel, self.db_path, long_channel_id, claim_name
        )

    async def get_long_claim_id(self, name: str, short_id: str) -> Optional[str]:
        return await asyncio.to_thread(get_long_claim_id, self.db_path, name, short_id)

    async def get_winning_claim_id(self, name: str) -> Optional[str]:
        return await asyncio.to_thread(get_winning_claim_id, self.db_path, name)

    async def get_claim_record(self, claim_id: str, name: str) -> Optional[ClaimRecord]:
        return await asyncio.to_thread(get_claim, self.db_path, claim_id, name)

    async def get_short_claim_id(self, long_id: str, name: str) -> str:
        return await asyncio.to_thread(get_short_claim_id, self.db_path, long_id, name)

    async def get_local_file_record(self, claim_id: str, name: str) -> FileLookup:
        return await asyncio.to_thread(get_local_file, self.db_path, claim_id, name)

    async def save_claims(self, claims: List[ClaimRecord]) -> None:
        await asyncio.to_thread(save_claims, self.db_path, claims)

    async def save_file(self, record: FileRecord) -> None:
        await asyncio.to_thread(save_file, self.db_path, record)
