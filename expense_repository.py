"""
Expense storage on top of the key-value store
Every expense lives under expense:<user_id>:<expense_id>, so records are only
reachable through the owning user's id.
"""
import logging
import uuid
from typing import Dict, List

from errors import NotFoundError, UnauthorizedError
from kv_store import KVStore

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"
EDITABLE_FIELDS = ("description", "amount", "category", "date")


class ExpenseRepository:

    def __init__(self, store: KVStore):
        self.store = store

    @staticmethod
    def user_prefix(user_id: str) -> str:
        if not user_id or KEY_SEPARATOR in user_id:
            raise UnauthorizedError("Invalid user id")
        return f"expense{KEY_SEPARATOR}{user_id}{KEY_SEPARATOR}"

    def _key(self, user_id: str, expense_id: str) -> str:
        return f"{self.user_prefix(user_id)}{expense_id}"

    def _require(self, user_id: str, expense_id: str) -> Dict:
        # An id with a separator could address another user's key space
        if not expense_id or KEY_SEPARATOR in expense_id:
            raise NotFoundError()
        expense = self.store.get(self._key(user_id, expense_id))
        if expense is None:
            raise NotFoundError()
        return expense

    def create(self, user_id: str, fields: Dict) -> Dict:
        """Store a new expense and return it with its generated id"""
        expense_id = str(uuid.uuid4())
        expense = {"id": expense_id}
        expense.update({name: fields[name] for name in EDITABLE_FIELDS})
        expense["userId"] = user_id

        self.store.set(self._key(user_id, expense_id), expense)
        logger.info("Created expense %s for user %s", expense_id, user_id)
        return expense

    def get(self, user_id: str, expense_id: str) -> Dict:
        return self._require(user_id, expense_id)

    def update(self, user_id: str, expense_id: str, fields: Dict) -> Dict:
        """Replace the editable fields; id and userId are kept from the stored record"""
        expense = self._require(user_id, expense_id)
        expense.update({name: fields[name] for name in EDITABLE_FIELDS})
        expense["id"] = expense_id
        expense["userId"] = user_id

        self.store.set(self._key(user_id, expense_id), expense)
        logger.info("Updated expense %s for user %s", expense_id, user_id)
        return expense

    def delete(self, user_id: str, expense_id: str) -> None:
        self._require(user_id, expense_id)
        self.store.delete(self._key(user_id, expense_id))
        logger.info("Deleted expense %s for user %s", expense_id, user_id)

    def list_by_user(self, user_id: str) -> List[Dict]:
        """All of the user's expenses, unordered"""
        return self.store.scan_prefix(self.user_prefix(user_id))
