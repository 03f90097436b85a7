# Shared test setup: fake identity provider, call-counting store and a fixed clock

from datetime import datetime, timezone

import pytest

from app import create_app
from auth_helpers import IdentityProvider, Principal
from config import Config
from errors import ProviderError, UnauthorizedError
from expense_repository import ExpenseRepository
from expense_service import ExpenseService
from kv_store import MemoryKVStore

# Every test runs "now" at this instant
NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock():
    return NOW


class TestingConfig(Config):
    __test__ = False

    TESTING = True
    API_PREFIX = "/api"
    KV_BACKEND = "memory"
    SEED_DEMO_USER = False


class CountingStore(MemoryKVStore):
    """In-memory store that records every call made to it"""

    def __init__(self):
        super().__init__()
        self.calls = []

    def get(self, key):
        self.calls.append(("get", key))
        return super().get(key)

    def set(self, key, value):
        self.calls.append(("set", key))
        super().set(key, value)

    def delete(self, key):
        self.calls.append(("delete", key))
        super().delete(key)

    def scan_prefix(self, prefix):
        self.calls.append(("scan_prefix", prefix))
        return super().scan_prefix(prefix)


class FakeIdentityProvider(IdentityProvider):
    """Identity provider that keeps users in a dict and issues token-<id> tokens"""

    def __init__(self):
        self.users = {}
        self.tokens = {}

    def sign_up(self, name, email, password):
        if email in self.users:
            raise ProviderError("A user with this email address has already been registered")
        user = {"id": f"user-{len(self.users) + 1}", "email": email, "name": name}
        self.users[email] = dict(user, password=password)
        return user

    def sign_in(self, email, password):
        stored = self.users.get(email)
        if stored is None or stored["password"] != password:
            raise UnauthorizedError("Invalid credentials")
        token = f"token-{stored['id']}"
        self.tokens[token] = Principal(stored["id"], stored["email"], stored["name"])
        return token, {"id": stored["id"], "email": stored["email"], "name": stored["name"]}

    def verify_token(self, token):
        principal = self.tokens.get(token)
        if principal is None:
            raise UnauthorizedError()
        return principal

    def ensure_user(self, name, email, password):
        if email in self.users:
            return False
        self.sign_up(name, email, password)
        return True


@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def repository(store):
    return ExpenseRepository(store)


@pytest.fixture
def service(repository):
    return ExpenseService(repository, clock=fixed_clock)


@pytest.fixture
def identity():
    provider = FakeIdentityProvider()
    provider.sign_up("Alice", "alice@example.com", "secret123")
    provider.sign_up("Bob", "bob@example.com", "hunter22")
    return provider


@pytest.fixture
def app(store, identity):
    return create_app(TestingConfig, store=store, identity=identity, clock=fixed_clock)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def alice_headers(identity):
    token, _ = identity.sign_in("alice@example.com", "secret123")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def bob_headers(identity):
    token, _ = identity.sign_in("bob@example.com", "hunter22")
    return {"Authorization": f"Bearer {token}"}


def expense_payload(**overrides):
    payload = {
        "description": "Groceries",
        "amount": 42.5,
        "category": "food",
        "date": "2026-10-05",
    }
    payload.update(overrides)
    return payload
