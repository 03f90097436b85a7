"""
Key-value storage backends
Every backend maps string keys to JSON values and supports prefix scans.
The expense repository is the only caller that knows the key naming scheme.
"""
import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from models import Base, KVEntry
from supabase_config import get_supabase_client

logger = logging.getLogger(__name__)


class KVStore:
    """Interface shared by all storage backends"""

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def scan_prefix(self, prefix: str) -> List[Any]:
        """Return every value whose key starts with prefix, in no particular order"""
        raise NotImplementedError


class MemoryKVStore(KVStore):
    """Process-local store for development and tests"""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key):
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    def set(self, key, value):
        self._data[key] = copy.deepcopy(value)

    def delete(self, key):
        self._data.pop(key, None)

    def scan_prefix(self, prefix):
        return [copy.deepcopy(v) for k, v in self._data.items() if k.startswith(prefix)]

    def __len__(self):
        return len(self._data)


class SQLKVStore(KVStore):
    """Store backed by a SQL table through SQLAlchemy (SQLite locally, PostgreSQL in production)"""

    def __init__(self, database_url: str, create_tables: bool = True):
        self.engine = create_engine(database_url)
        self._session = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(self.engine)

    def get(self, key):
        with self._session() as session:
            entry = session.get(KVEntry, key)
            return entry.value if entry else None

    def set(self, key, value):
        with self._session() as session:
            session.merge(KVEntry(key=key, value=value))
            session.commit()

    def delete(self, key):
        with self._session() as session:
            entry = session.get(KVEntry, key)
            if entry is not None:
                session.delete(entry)
                session.commit()

    def scan_prefix(self, prefix):
        with self._session() as session:
            rows = session.execute(
                select(KVEntry.value).where(KVEntry.key.startswith(prefix, autoescape=True))
            )
            return [row[0] for row in rows]


class SupabaseKVStore(KVStore):
    """
    Store backed by a Supabase table with columns key (text, primary key) and value (jsonb)
    """

    def __init__(self, client, table: str = "kv_store"):
        self.client = client
        self.table = table

    def get(self, key):
        response = self.client.table(self.table).select("value").eq("key", key).limit(1).execute()
        if response.data:
            return response.data[0]["value"]
        return None

    def set(self, key, value):
        self.client.table(self.table).upsert({"key": key, "value": value}).execute()

    def delete(self, key):
        self.client.table(self.table).delete().eq("key", key).execute()

    def scan_prefix(self, prefix):
        # Keys are built from uuids and ':' so the prefix holds no LIKE wildcards
        response = self.client.table(self.table).select("key, value").like("key", f"{prefix}%").execute()
        return [row["value"] for row in (response.data or [])]


def create_store(config: Mapping) -> KVStore:
    """Build the backend named by KV_BACKEND"""
    backend = (config.get("KV_BACKEND") or "supabase").lower()

    if backend == "memory":
        logger.warning("Using in-memory key-value store - data is lost on restart")
        return MemoryKVStore()
    if backend == "sql":
        logger.info("Using SQL key-value store")
        return SQLKVStore(config.get("DATABASE_URL", "sqlite:///expenses.db"))
    if backend == "supabase":
        logger.info("Using Supabase key-value store (table %s)", config.get("KV_TABLE", "kv_store"))
        return SupabaseKVStore(get_supabase_client(config), config.get("KV_TABLE", "kv_store"))

    raise ValueError(f"Unknown KV_BACKEND '{backend}'. Use supabase, sql or memory.")
