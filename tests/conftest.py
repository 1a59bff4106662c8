"""Pytest fixtures: in-memory Firestore and Firebase Auth doubles plus an ASGI client.

Both doubles are installed into app.db.firestore for every test, so nothing
ever reaches Google services and no credentials are needed.
"""

import copy
import itertools
import uuid
from types import SimpleNamespace

import pytest
from firebase_admin import auth as firebase_auth
from google.api_core.exceptions import AlreadyExists, NotFound
from google.cloud.firestore import ArrayUnion, Increment
from httpx import ASGITransport, AsyncClient

import app.db.firestore as firestore_module


# --- Firestore double ---
def _apply(current: dict, data: dict) -> dict:
    out = copy.deepcopy(current)
    for key, value in data.items():
        if isinstance(value, Increment):
            out[key] = (out.get(key) or 0) + value.value
        elif isinstance(value, ArrayUnion):
            existing = list(out.get(key) or [])
            for item in value.values:
                if item not in existing:
                    existing.append(item)
            out[key] = existing
        else:
            out[key] = copy.deepcopy(value)
    return out


class FakeSnapshot:
    def __init__(self, ref, data):
        self.reference = ref
        self.id = ref.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, store, path):
        self._store = store
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def collection(self, name):
        return FakeCollection(self._store, f"{self.path}/{name}")

    def get(self):
        return FakeSnapshot(self, self._store.docs.get(self.path))

    def set(self, data, merge=False):
        self._store.record("set", self.path)
        base = self._store.docs.get(self.path, {}) if merge else {}
        self._store.docs[self.path] = _apply(base, data)

    def create(self, data):
        if self.path in self._store.docs:
            raise AlreadyExists(f"Document already exists: {self.path}")
        self.set(data)

    def update(self, data):
        self._store.record("update", self.path)
        if self.path not in self._store.docs:
            raise NotFound(f"No document to update: {self.path}")
        self._store.docs[self.path] = _apply(self._store.docs[self.path], data)

    def delete(self):
        self._store.record("delete", self.path)
        self._store.docs.pop(self.path, None)


class FakeQuery:
    def __init__(self, collection, filters=(), order=None, limit_to=None):
        self._collection = collection
        self._filters = list(filters)
        self._order = order
        self._limit = limit_to

    def where(self, field, op, value):
        return FakeQuery(self._collection, self._filters + [(field, op, value)], self._order, self._limit)

    def order_by(self, field, direction="ASCENDING"):
        return FakeQuery(self._collection, self._filters, (field, direction), self._limit)

    def limit(self, n):
        return FakeQuery(self._collection, self._filters, self._order, n)

    @staticmethod
    def _match(data, field, op, value):
        actual = data.get(field)
        if op == "==":
            return actual == value
        if op == "in":
            return actual in value
        if op == "array_contains":
            return value in (actual or [])
        raise NotImplementedError(op)

    def stream(self):
        snaps = [s for s in self._collection._children() if all(self._match(s.to_dict(), *f) for f in self._filters)]
        if self._order:
            field, direction = self._order
            snaps = [s for s in snaps if field in s.to_dict()]
            snaps.sort(key=lambda s: s.to_dict()[field], reverse=direction == "DESCENDING")
        if self._limit is not None:
            snaps = snaps[: self._limit]
        return iter(snaps)

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, store, path):
        self._store = store
        self.path = path
        super().__init__(self)

    def _children(self):
        prefix = self.path + "/"
        return [
            FakeSnapshot(FakeDocRef(self._store, p), d)
            for p, d in sorted(self._store.docs.items())
            if p.startswith(prefix) and "/" not in p[len(prefix):]
        ]

    def document(self, doc_id=None):
        return FakeDocRef(self._store, f"{self.path}/{doc_id or uuid.uuid4().hex[:20]}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeBatch:
    def __init__(self, store):
        self._store = store
        self._ops = []

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, data):
        self._ops.append(lambda: ref.update(data))

    def commit(self):
        if self._store.fail_batches:
            raise RuntimeError("batch commit failed")
        self._store.batches_committed += 1
        for op in self._ops:
            op()


class FakeFirestore:
    def __init__(self):
        self.docs = {}
        self.writes = []
        self.fail_batches = False
        self.batches_committed = 0

    def record(self, kind, path):
        self.writes.append((kind, path))

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    # Test helpers
    def put(self, path, data):
        self.docs[path] = copy.deepcopy(data)

    def read(self, path):
        return copy.deepcopy(self.docs.get(path))

    def under(self, collection_path):
        prefix = collection_path + "/"
        return {p[len(prefix):]: d for p, d in self.docs.items() if p.startswith(prefix) and "/" not in p[len(prefix):]}


# --- Firebase Auth double ---
class FakeAuth:
    def __init__(self):
        self.users = {}
        self.tokens = {}
        self.calls = []
        self._ids = itertools.count(1)
        self.fail_claims = False

    def _by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def create_user(self, email=None, password=None, display_name=None, phone_number=None, **kwargs):
        self.calls.append("create_user")
        if self._by_email(email):
            raise firebase_auth.EmailAlreadyExistsError("The user with the provided email already exists", None, None)
        uid = f"uid{next(self._ids)}"
        self.users[uid] = SimpleNamespace(uid=uid, email=email, password=password, display_name=display_name,
                                          phone_number=phone_number, custom_claims=None, disabled=False)
        return self.users[uid]

    def get_user(self, uid):
        if uid not in self.users:
            raise firebase_auth.UserNotFoundError(f"No user record found for {uid}")
        return self.users[uid]

    def get_user_by_email(self, email):
        user = self._by_email(email)
        if not user:
            raise firebase_auth.UserNotFoundError(f"No user record found for {email}")
        return user

    def update_user(self, uid, **kwargs):
        self.calls.append("update_user")
        user = self.get_user(uid)
        for key, value in kwargs.items():
            setattr(user, key, value)
        return user

    def set_custom_user_claims(self, uid, claims):
        self.calls.append("set_custom_user_claims")
        if self.fail_claims:
            raise RuntimeError("claims backend unavailable")
        self.get_user(uid).custom_claims = dict(claims)

    def verify_id_token(self, token):
        if token not in self.tokens:
            raise ValueError("invalid token")
        return dict(self.tokens[token])


@pytest.fixture(autouse=True)
def fake_db(monkeypatch) -> FakeFirestore:
    db = FakeFirestore()
    monkeypatch.setattr(firestore_module, "_client", db)
    return db


@pytest.fixture(autouse=True)
def fake_auth(monkeypatch) -> FakeAuth:
    auth = FakeAuth()
    monkeypatch.setattr(firestore_module, "_auth", auth)
    return auth


@pytest.fixture
def login(fake_auth):
    """Registers a bearer token for (uid, role) and returns request headers."""

    def _login(uid: str, role: str, name: str = "Test User") -> dict:
        token = f"token-{uid}"
        fake_auth.tokens[token] = {"uid": uid, "email": f"{uid}@example.com", "role": role, "name": name}
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
async def client() -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    from app.main import app

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
