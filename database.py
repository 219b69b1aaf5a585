# database.py - settings overrides and closed ticket history
import aiosqlite
import json
import os
from pathlib import Path

DEFAULT_DB_FILE = "bot_data.db"
DB_FILE = os.getenv("DB_FILE", DEFAULT_DB_FILE)


class Database:
    def __init__(self, path: str = None):
        self.path = path or DB_FILE
        self.db = None

    async def init(self):
        if self.db:
            return
        db_path = Path(self.path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db = await aiosqlite.connect(self.path)
        print(f"Using SQLite at: {db_path.resolve()}")
        await self.create_tables()

    async def close(self):
        if self.db:
            await self.db.close()
            self.db = None

    async def create_tables(self):
        await self.db.execute("""
        CREATE TABLE IF NOT EXISTS config (
            key TEXT PRIMARY KEY,
            value TEXT
        )
        """)
        await self.db.execute("""
        CREATE TABLE IF NOT EXISTS ticket_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            ticket_id INTEGER,
            capability TEXT,
            leader_id INTEGER,
            helpers TEXT,
            question TEXT,
            reason TEXT,
            closed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """)
        await self.db.commit()

    # ---------- CONFIG ----------
    async def save_config(self, key, value):
        value_json = json.dumps(value)
        await self.db.execute(
            "INSERT INTO config(key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value_json)
        )
        await self.db.commit()

    async def load_config(self, key):
        async with self.db.execute("SELECT value FROM config WHERE key = ?", (key,)) as cursor:
            row = await cursor.fetchone()
            if row:
                return json.loads(row[0])
            return None

    # ---------- TICKET HISTORY ----------
    async def save_ticket_history(self, history_data):
        """Save a closed ticket"""
        await self.db.execute("""
            INSERT INTO ticket_history
            (ticket_id, capability, leader_id, helpers, question, reason)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            history_data["ticket_id"],
            str(history_data["capability"]),
            history_data["leader_id"],
            json.dumps(history_data.get("helpers", [])),
            history_data.get("question", ""),
            history_data["reason"]
        ))
        await self.db.commit()

    async def get_ticket_history(self, limit: int = 25):
        """Most recently closed tickets first"""
        async with self.db.execute("""
            SELECT ticket_id, capability, leader_id, helpers, question, reason, closed_at
            FROM ticket_history ORDER BY id DESC LIMIT ?
        """, (limit,)) as cursor:
            rows = await cursor.fetchall()
            history = []
            for row in rows:
                try:
                    helpers = json.loads(row[3])
                except (TypeError, ValueError):
                    helpers = []
                history.append({
                    "ticket_id": row[0],
                    "capability": row[1],
                    "leader_id": row[2],
                    "helpers": helpers,
                    "question": row[4],
                    "reason": row[5],
                    "closed_at": row[6]
                })
            return history

    async def get_tickets_last_24h(self):
        """Get total tickets closed in last 24 hours"""
        try:
            # Using datetime('now') in SQLite (UTC)
            async with self.db.execute(
                "SELECT COUNT(*) FROM ticket_history WHERE closed_at > datetime('now', '-24 hours')"
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0
        except Exception as e:
            print(f"⚠️ Error getting 24h stats: {e}")
            return 0


async def record_closed_ticket(db: Database, ticket, reason: str):
    """on_ticket_closed hook for the ticket manager"""
    await db.save_ticket_history({
        "ticket_id": ticket.id,
        "capability": ticket.requested_capability,
        "leader_id": ticket.leader,
        "helpers": list(ticket.helpers),
        "question": ticket.question,
        "reason": reason,
    })
