import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from songdrop.domain.entities import Account
from songdrop.domain.errors import PersistenceError
from songdrop.domain.ports import AccountStore

logger = logging.getLogger(__name__)


class SqliteAccountStore(AccountStore):
    """Account store on SQLite. Every operation uses its own short-lived connection."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            db = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open account store {self.db_path}: {e}") from e
        db.row_factory = sqlite3.Row
        try:
            yield db
            db.commit()
        except sqlite3.Error as e:
            db.rollback()
            raise PersistenceError(f"Account store operation failed: {e}") from e
        finally:
            db.close()

    def initialize(self) -> None:
        """Create or upgrade the schema."""
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)

        with self._connect() as db:
            existing_version = db.execute("PRAGMA user_version").fetchone()[0]
            if existing_version < 1:
                logger.info(f"Migrating account store {self.db_path} to version 1")
                db.executescript("""
                    CREATE TABLE IF NOT EXISTS accounts (
                        account_id TEXT PRIMARY KEY,
                        access_token TEXT NOT NULL,
                        refresh_token TEXT,
                        expires_at INTEGER NOT NULL,
                        api_key TEXT NOT NULL UNIQUE
                    );
                    PRAGMA user_version=1;
                """)

    @staticmethod
    def _row_to_account(row: Optional[sqlite3.Row]) -> Optional[Account]:
        if row is None:
            return None
        return Account(
            account_id=row["account_id"],
            access_token=row["access_token"],
            refresh_token=row["refresh_token"],
            expires_at=int(row["expires_at"]),
            api_key=row["api_key"],
        )

    def get(self, account_id: str) -> Optional[Account]:
        with self._connect() as db:
            row = db.execute("SELECT * FROM accounts WHERE account_id = ?", (account_id,)).fetchone()
        return self._row_to_account(row)

    def get_by_api_key(self, api_key: str) -> Optional[Account]:
        with self._connect() as db:
            row = db.execute("SELECT * FROM accounts WHERE api_key = ?", (api_key,)).fetchone()
        return self._row_to_account(row)

    def save_account(self, account: Account) -> None:
        """Insert or replace a full account row. Used by the sign-in flow and tooling."""
        with self._connect() as db:
            db.execute("""
                INSERT INTO accounts (account_id, access_token, refresh_token, expires_at, api_key)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(account_id) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    expires_at = excluded.expires_at,
                    api_key = excluded.api_key
            """, (
                account.account_id,
                account.access_token,
                account.refresh_token,
                account.expires_at,
                account.api_key,
            ))

    def update_tokens(self, account_id: str, access_token: str, refresh_token: Optional[str],
                      expires_at: int, expected_expires_at: int) -> bool:
        """Compare-and-swap on expires_at so concurrent refreshes do not clobber each other."""
        with self._connect() as db:
            cursor = db.execute("""
                UPDATE accounts
                SET access_token = ?,
                    refresh_token = ?,
                    expires_at = ?
                WHERE account_id = ? AND expires_at = ?
            """, (access_token, refresh_token, expires_at, account_id, expected_expires_at))
            swapped = cursor.rowcount == 1

        if swapped:
            logger.debug(f"Persisted refreshed tokens for account {account_id}")
        return swapped
