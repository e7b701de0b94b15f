import copy
import io
import itertools
from types import SimpleNamespace

import pytest
from google.cloud.firestore_v1.transforms import ArrayRemove, ArrayUnion, Increment

from e_estudiantes import create_app
from e_estudiantes import runtime as app_module

_AUTO_IDS = itertools.count(1)


def _apply_value(current, value, merge):
    if isinstance(value, Increment):
        base = current if isinstance(current, (int, float)) else 0
        return base + value.value
    if isinstance(value, ArrayUnion):
        base = list(current) if isinstance(current, list) else []
        return base + [item for item in value.values if item not in base]
    if isinstance(value, ArrayRemove):
        base = current if isinstance(current, list) else []
        return [item for item in base if item not in value.values]
    if isinstance(value, dict):
        base = current if (merge and isinstance(current, dict)) else {}
        for key, item in value.items():
            base[key] = _apply_value(base.get(key), item, merge)
        return base
    return copy.deepcopy(value)


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data) if data is not None else None

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field_path):
        return (self._data or {}).get(field_path)


class FakeDocumentRef:
    def __init__(self, db, collection_name, doc_id):
        self._db = db
        self._collection_name = collection_name
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.data.setdefault(self._collection_name, {})

    def get(self, transaction=None):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        current = self._docs.get(self.id) if merge else None
        self._docs[self.id] = _apply_value(current, data, merge)

    def update(self, updates):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection_name}/{self.id}")
        doc = self._docs[self.id]
        for key, value in updates.items():
            parts = key.split(".")
            target = doc
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = _apply_value(target.get(parts[-1]), value, False)

    def delete(self):
        self._docs.pop(self.id, None)


_OPERATORS = {
    "==": lambda left, right: left == right,
    "!=": lambda left, right: left != right,
    "in": lambda left, right: left in right,
    ">=": lambda left, right: left is not None and left >= right,
    "<=": lambda left, right: left is not None and left <= right,
    ">": lambda left, right: left is not None and left > right,
    "<": lambda left, right: left is not None and left < right,
    "array_contains": lambda left, right: isinstance(left, list) and right in left,
}


class FakeQuery:
    """Positional-only query double; ``where(filter=...)`` raises TypeError."""

    def __init__(self, db, collection_name, filters=(), order=None, limit_value=None):
        self._db = db
        self._collection_name = collection_name
        self._filters = tuple(filters)
        self._order = order
        self._limit_value = limit_value

    def _clone(self, **changes):
        state = {
            "filters": self._filters,
            "order": self._order,
            "limit_value": self._limit_value,
        }
        state.update(changes)
        return FakeQuery(self._db, self._collection_name, **state)

    def where(self, field_path, op_string, value):
        return self._clone(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction=None):
        return self._clone(order=(field_path, direction == "DESCENDING"))

    def limit(self, count):
        return self._clone(limit_value=count)

    def stream(self):
        docs = self._db.data.get(self._collection_name, {})
        matched = []
        for doc_id, data in list(docs.items()):
            if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters):
                matched.append(FakeSnapshot(FakeDocumentRef(self._db, self._collection_name, doc_id), data))
        if self._order:
            field_path, descending = self._order
            matched.sort(key=lambda snap: snap.to_dict().get(field_path) or 0, reverse=descending)
        if self._limit_value:
            matched = matched[: self._limit_value]
        return iter(matched)


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self._collection_name, doc_id or f"auto{next(_AUTO_IDS):06d}")

    def add(self, data):
        ref = self.document()
        ref.set(data)
        return None, ref


class FakeTransaction:
    """Buffers writes and applies them all, or none, on commit."""

    def __init__(self, db):
        self._db = db
        self._writes = []

    def set(self, reference, data, merge=False):
        self._writes.append(lambda: reference.set(data, merge=merge))

    def update(self, reference, updates):
        self._writes.append(lambda: reference.update(updates))

    def commit(self):
        writes, self._writes = self._writes, []
        backup = copy.deepcopy(self._db.data)
        try:
            for write in writes:
                write()
        except Exception:
            self._db.data = backup
            raise


def fake_transactional(to_wrap):
    def _run(transaction, *args, **kwargs):
        result = to_wrap(transaction, *args, **kwargs)
        transaction.commit()
        return result

    return _run


FAKE_FIRESTORE_MODULE = SimpleNamespace(
    transactional=fake_transactional,
    Increment=Increment,
    ArrayUnion=ArrayUnion,
    ArrayRemove=ArrayRemove,
    Query=SimpleNamespace(DESCENDING="DESCENDING", ASCENDING="ASCENDING"),
)


class FakeFirestore:
    def __init__(self):
        self.data = {}

    def collection(self, name):
        return FakeCollection(self, name)

    def transaction(self):
        return FakeTransaction(self)

    def seed(self, collection_name, doc_id, data):
        self.data.setdefault(collection_name, {})[doc_id] = copy.deepcopy(data)

    def doc(self, collection_name, doc_id):
        return self.data.get(collection_name, {}).get(doc_id)

    def docs(self, collection_name):
        return self.data.get(collection_name, {})


class FakeBlob:
    def __init__(self, bucket, name):
        self._bucket = bucket
        self.name = name
        self.public_url = f"https://storage.example.test/{name}"

    def upload_from_file(self, file_obj, content_type=None):
        self._bucket.files[self.name] = (file_obj.read(), content_type)

    def delete(self):
        self._bucket.files.pop(self.name, None)

    def generate_signed_url(self, expiration=None, version=None):
        return f"https://signed.example.test/{self.name}?ttl={int(expiration.total_seconds())}"


class FakeBucket:
    def __init__(self):
        self.files = {}

    def blob(self, name):
        return FakeBlob(self, name)

    def get_blob(self, name):
        if name not in self.files:
            return None
        content, content_type = self.files[name]
        return SimpleNamespace(name=name, size=len(content), content_type=content_type, updated=None)


def auth_as(monkeypatch, uid="u1", email="u1@example.com", **claims):
    token = {"uid": uid, "email": email}
    token.update(claims)
    monkeypatch.setattr(app_module, "verify_firebase_token", lambda _request: token)
    return token


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.setenv("FLASK_ENV", "test")
    flask_app = create_app()
    flask_app.config["TESTING"] = True
    app_module.RATE_LIMIT_EVENTS.clear()
    with flask_app.test_client() as test_client:
        yield test_client
    app_module.RATE_LIMIT_EVENTS.clear()


@pytest.fixture()
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(app_module, "db", db)
    monkeypatch.setattr(app_module, "firestore", FAKE_FIRESTORE_MODULE)
    return db


@pytest.fixture()
def fake_bucket(monkeypatch):
    bucket = FakeBucket()
    monkeypatch.setattr(app_module, "bucket", bucket)
    return bucket


@pytest.fixture(autouse=True)
def disable_external_services(monkeypatch):
    monkeypatch.setattr(app_module, "sentry_sdk", None)
    monkeypatch.setattr(app_module, "client", None)


@pytest.fixture()
def upload_bytes():
    return lambda content=b"%PDF-1.4 notes": io.BytesIO(content)
