"""SQLite persistence layer for the campaign game engine.

Implements the repository contract on a single SQLite file:
- Catalogs (enemies, equipment, items), seeded on first start
- Campaigns and their characters
- Inventories (one row per item instance, so stacks are just repeats)
- The append-only event log, numbered per campaign
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from crawl_engine.core.config import get_settings
from crawl_engine.core.exceptions import RecordNotFoundError, RepositoryError
from crawl_engine.core.logging import get_logger
from crawl_engine.models.enums import CampaignState, Difficulty, EventType
from crawl_engine.models.events import EventData, parse_event_data
from crawl_engine.models.records import (
    Campaign,
    Character,
    CharacterDraft,
    Enemy,
    Equipment,
    GameEvent,
    Item,
    ItemDraft,
    utc_now,
)
from crawl_engine.storage import seed


logger = get_logger(__name__)


# =============================================================================
# Row Conversion
# =============================================================================


def _campaign_from_row(row: sqlite3.Row) -> Campaign:
    return Campaign(
        id=row["id"],
        account_id=row["account_id"],
        name=row["name"],
        state=CampaignState(row["state"]),
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
    )


def _character_from_row(row: sqlite3.Row) -> Character:
    return Character(
        id=row["id"],
        campaign_id=row["campaign_id"],
        name=row["name"],
        current_health=row["current_health"],
        max_health=row["max_health"],
        attack=row["attack"],
        defense=row["defense"],
        weapon_id=row["weapon_id"],
        armour_id=row["armour_id"],
        shield_id=row["shield_id"],
        sprite_path=row["sprite_path"],
    )


def _item_from_row(row: sqlite3.Row) -> Item:
    return Item(
        id=row["id"],
        name=row["name"],
        stat_modified=row["stat_modified"],
        stat_value=row["stat_value"],
        rarity=row["rarity"],
        description=row["description"] or "",
        sprite_path=row["sprite_path"],
    )


def _event_from_row(row: sqlite3.Row) -> GameEvent:
    return GameEvent(
        id=row["id"],
        campaign_id=row["campaign_id"],
        event_number=row["event_number"],
        message=row["message"],
        event_type=EventType(row["event_type"]),
        data=parse_event_data(row["event_data"]),
        created_at=datetime.fromisoformat(row["created_at"]),
    )


# =============================================================================
# Repository
# =============================================================================


class SQLiteRepository:
    """SQLite-backed game repository.

    Each call opens its own connection unless it runs inside
    ``transaction()``, in which case it joins the transaction's connection
    on the same thread.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path | None = None) -> None:
        """Initialize the database.

        Args:
            db_path: Path to database file. If None, uses the configured path.
        """
        if db_path is None:
            self.db_path = get_settings().storage.database_path
        else:
            self.db_path = Path(db_path)

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._local = threading.local()

        self._init_schema()
        self._seed_catalog()

        logger.info("Database initialized", path=str(self.db_path))

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection, joining an open transaction if any."""
        active: sqlite3.Connection | None = getattr(self._local, "conn", None)
        if active is not None:
            try:
                yield active
            except sqlite3.Error as exc:
                raise RepositoryError(f"Database error: {exc}") from exc
            return

        try:
            conn = sqlite3.connect(str(self.db_path), timeout=10)
        except sqlite3.Error as exc:
            raise RepositoryError(
                f"Cannot open database: {exc}",
                details={"path": str(self.db_path)},
            ) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RepositoryError(f"Database error: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Apply every write in the block, or none of them."""
        if getattr(self._local, "conn", None) is not None:
            yield
            return
        with self._get_connection() as conn:
            self._local.conn = conn
            try:
                yield
            finally:
                self._local.conn = None

    def _init_schema(self) -> None:
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                );

                CREATE TABLE IF NOT EXISTS enemies (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    difficulty TEXT NOT NULL,
                    health INTEGER NOT NULL,
                    attack INTEGER NOT NULL,
                    defense INTEGER NOT NULL,
                    sprite_path TEXT
                );

                CREATE TABLE IF NOT EXISTS equipment (
                    id INTEGER PRIMARY KEY,
                    slot TEXT NOT NULL,
                    name TEXT NOT NULL UNIQUE,
                    bonus INTEGER NOT NULL,
                    rarity INTEGER NOT NULL,
                    description TEXT DEFAULT '',
                    sprite_path TEXT
                );

                CREATE TABLE IF NOT EXISTS items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    rarity INTEGER NOT NULL,
                    stat_modified TEXT NOT NULL,
                    stat_value INTEGER NOT NULL,
                    description TEXT DEFAULT '',
                    sprite_path TEXT,
                    UNIQUE (name, stat_modified, stat_value)
                );

                CREATE TABLE IF NOT EXISTS campaigns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    state TEXT NOT NULL DEFAULT 'active',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS characters (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_id INTEGER NOT NULL UNIQUE
                        REFERENCES campaigns (id) ON DELETE CASCADE,
                    name TEXT NOT NULL,
                    current_health INTEGER NOT NULL,
                    max_health INTEGER NOT NULL,
                    attack INTEGER NOT NULL,
                    defense INTEGER NOT NULL,
                    weapon_id INTEGER REFERENCES equipment (id),
                    armour_id INTEGER REFERENCES equipment (id),
                    shield_id INTEGER REFERENCES equipment (id),
                    sprite_path TEXT
                );

                CREATE TABLE IF NOT EXISTS inventory (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_id INTEGER NOT NULL
                        REFERENCES campaigns (id) ON DELETE CASCADE,
                    item_id INTEGER NOT NULL REFERENCES items (id)
                );

                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    campaign_id INTEGER NOT NULL
                        REFERENCES campaigns (id) ON DELETE CASCADE,
                    event_number INTEGER NOT NULL,
                    message TEXT NOT NULL,
                    event_type TEXT NOT NULL,
                    event_data TEXT,
                    created_at TEXT NOT NULL,
                    UNIQUE (campaign_id, event_number)
                );

                CREATE INDEX IF NOT EXISTS idx_campaigns_account
                ON campaigns(account_id);
                CREATE INDEX IF NOT EXISTS idx_inventory_campaign
                ON inventory(campaign_id);
            """)
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    def _seed_catalog(self) -> None:
        """Load the catalogs, leaving existing rows untouched."""
        with self._get_connection() as conn:
            conn.executemany(
                """
                INSERT OR IGNORE INTO enemies
                (id, name, difficulty, health, attack, defense, sprite_path)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (e.id, e.name, str(e.difficulty), e.health, e.attack, e.defense,
                     e.sprite_path)
                    for e in seed.ENEMIES
                ],
            )
            conn.executemany(
                """
                INSERT OR IGNORE INTO equipment
                (id, slot, name, bonus, rarity, description, sprite_path)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (q.id, str(q.slot), q.name, q.bonus, q.rarity, q.description,
                     q.sprite_path)
                    for q in seed.EQUIPMENT
                ],
            )
            conn.executemany(
                """
                INSERT OR IGNORE INTO items
                (id, name, rarity, stat_modified, stat_value, description, sprite_path)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (i.id, i.name, i.rarity, str(i.stat_modified), i.stat_value,
                     i.description, i.sprite_path)
                    for i in seed.ITEMS
                ],
            )

    # =========================================================================
    # Campaign Operations
    # =========================================================================

    def get_campaign(self, campaign_id: int) -> Campaign | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM campaigns WHERE id = ?", (campaign_id,)
            ).fetchone()
        return _campaign_from_row(row) if row else None

    def update_campaign(self, campaign: Campaign) -> Campaign:
        updated = campaign.model_copy(update={"updated_at": utc_now()})
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE campaigns SET name = ?, state = ?, updated_at = ? WHERE id = ?",
                (updated.name, str(updated.state), updated.updated_at.isoformat(), updated.id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError("Campaign", campaign.id)
        return updated

    def create_campaign(
        self,
        account_id: int,
        name: str,
        character: CharacterDraft,
    ) -> tuple[Campaign, Character]:
        """Create a campaign together with its character.

        Returns:
            The stored campaign and character.
        """
        now = utc_now().isoformat()
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO campaigns (account_id, name, state, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (account_id, name, str(CampaignState.ACTIVE), now, now),
            )
            campaign_id = cursor.lastrowid
            conn.execute(
                """
                INSERT INTO characters
                (campaign_id, name, current_health, max_health, attack, defense,
                 weapon_id, armour_id, shield_id, sprite_path)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (campaign_id, character.name, character.max_health, character.max_health,
                 character.attack, character.defense, character.weapon_id,
                 character.armour_id, character.shield_id, character.sprite_path),
            )
            campaign_row = conn.execute(
                "SELECT * FROM campaigns WHERE id = ?", (campaign_id,)
            ).fetchone()
            character_row = conn.execute(
                "SELECT * FROM characters WHERE campaign_id = ?", (campaign_id,)
            ).fetchone()

        logger.info("Created campaign", campaign_id=campaign_id, account_id=account_id)
        return _campaign_from_row(campaign_row), _character_from_row(character_row)

    def count_campaigns(self, account_id: int) -> int:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM campaigns WHERE account_id = ?", (account_id,)
            ).fetchone()
        return row[0]

    # =========================================================================
    # Character & Equipment Operations
    # =========================================================================

    def get_character(self, campaign_id: int) -> Character | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM characters WHERE campaign_id = ?", (campaign_id,)
            ).fetchone()
        return _character_from_row(row) if row else None

    def update_character(self, character: Character) -> Character:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                UPDATE characters
                SET name = ?, current_health = ?, max_health = ?, attack = ?,
                    defense = ?, weapon_id = ?, armour_id = ?, shield_id = ?,
                    sprite_path = ?
                WHERE id = ?
                """,
                (character.name, character.current_health, character.max_health,
                 character.attack, character.defense, character.weapon_id,
                 character.armour_id, character.shield_id, character.sprite_path,
                 character.id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError("Character", character.id)
        return character

    def get_equipment(self, equipment_id: int) -> Equipment | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM equipment WHERE id = ?", (equipment_id,)
            ).fetchone()
        if row is None:
            return None
        return Equipment(
            id=row["id"],
            slot=row["slot"],
            name=row["name"],
            bonus=row["bonus"],
            rarity=row["rarity"],
            description=row["description"] or "",
            sprite_path=row["sprite_path"],
        )

    def equip_item(self, campaign_id: int, equipment: Equipment) -> Character:
        column = f"{equipment.slot}_id"
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE characters SET {column} = ? WHERE campaign_id = ?",
                (equipment.id, campaign_id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError("Character", campaign_id)
            row = conn.execute(
                "SELECT * FROM characters WHERE campaign_id = ?", (campaign_id,)
            ).fetchone()
        return _character_from_row(row)

    # =========================================================================
    # Enemy Operations
    # =========================================================================

    @staticmethod
    def _enemy_from_row(row: sqlite3.Row) -> Enemy:
        return Enemy(
            id=row["id"],
            name=row["name"],
            difficulty=Difficulty(row["difficulty"]),
            health=row["health"],
            attack=row["attack"],
            defense=row["defense"],
            sprite_path=row["sprite_path"],
        )

    def get_enemy(self, enemy_id: int) -> Enemy | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM enemies WHERE id = ?", (enemy_id,)).fetchone()
        return self._enemy_from_row(row) if row else None

    def get_random_enemy(self, difficulty: Difficulty) -> Enemy | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM enemies WHERE difficulty = ? ORDER BY RANDOM() LIMIT 1",
                (str(difficulty),),
            ).fetchone()
        return self._enemy_from_row(row) if row else None

    # =========================================================================
    # Inventory Operations
    # =========================================================================

    def get_inventory(self, campaign_id: int) -> list[Item]:
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT items.* FROM inventory
                JOIN items ON items.id = inventory.item_id
                WHERE inventory.campaign_id = ?
                ORDER BY inventory.id
                """,
                (campaign_id,),
            ).fetchall()
        return [_item_from_row(row) for row in rows]

    def add_item_to_inventory(self, campaign_id: int, item: Item | ItemDraft) -> Item:
        """Add one instance of an item.

        Narrator items are catalogued by name and effect, so a draft that
        shares a name with an existing item but changes a different stat,
        or by a different amount, gets its own row.
        """
        with self._get_connection() as conn:
            if isinstance(item, Item):
                item_id = item.id
            else:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO items
                    (name, rarity, stat_modified, stat_value, description, sprite_path)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (item.name, item.rarity, str(item.stat_modified), item.stat_value,
                     item.description, item.sprite_path),
                )
                item_id = conn.execute(
                    """
                    SELECT id FROM items
                    WHERE name = ? AND stat_modified = ? AND stat_value = ?
                    """,
                    (item.name, str(item.stat_modified), item.stat_value),
                ).fetchone()[0]
            conn.execute(
                "INSERT INTO inventory (campaign_id, item_id) VALUES (?, ?)",
                (campaign_id, item_id),
            )
            row = conn.execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        if row is None:
            raise RecordNotFoundError("Item", item_id)
        return _item_from_row(row)

    def remove_item_from_inventory(self, campaign_id: int, item_id: int) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                DELETE FROM inventory WHERE id = (
                    SELECT id FROM inventory
                    WHERE campaign_id = ? AND item_id = ?
                    ORDER BY id LIMIT 1
                )
                """,
                (campaign_id, item_id),
            )
            return cursor.rowcount > 0

    # =========================================================================
    # Event Log Operations
    # =========================================================================

    def save_event(
        self,
        campaign_id: int,
        message: str,
        event_type: EventType,
        data: EventData | None = None,
    ) -> GameEvent:
        """Append an event with the campaign's next event number."""
        now = utc_now()
        payload = data.model_dump_json() if data is not None else None
        with self._get_connection() as conn:
            next_number = conn.execute(
                "SELECT COALESCE(MAX(event_number), 0) + 1 FROM logs WHERE campaign_id = ?",
                (campaign_id,),
            ).fetchone()[0]
            cursor = conn.execute(
                """
                INSERT INTO logs
                (campaign_id, event_number, message, event_type, event_data, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (campaign_id, next_number, message, str(event_type), payload, now.isoformat()),
            )
            event_id = cursor.lastrowid

        return GameEvent(
            id=event_id,
            campaign_id=campaign_id,
            event_number=next_number,
            message=message,
            event_type=event_type,
            data=data,
            created_at=now,
        )

    def get_recent_events(self, campaign_id: int, limit: int) -> list[GameEvent]:
        """Get the latest ``limit`` events, oldest first."""
        if limit <= 0:
            return []
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM logs WHERE campaign_id = ?
                ORDER BY event_number DESC LIMIT ?
                """,
                (campaign_id, limit),
            ).fetchall()
        return [_event_from_row(row) for row in reversed(rows)]

    def get_events(self, campaign_id: int) -> list[GameEvent]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM logs WHERE campaign_id = ? ORDER BY event_number",
                (campaign_id,),
            ).fetchall()
        return [_event_from_row(row) for row in rows]


__all__ = ["SQLiteRepository"]
