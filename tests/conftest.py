"""Shared test fixtures.

The app talks to Supabase, OpenAI and Pinecone. Tests swap in an in-memory
Supabase query builder and small fakes for the AI services, so every test
runs offline.
"""

import os
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

os.environ.update({
    "ENVIRONMENT": "test",
    "SUPABASE_URL": "https://project.supabase.co",
    "SUPABASE_ANON_KEY": "anon-key",
    "SUPABASE_SERVICE_ROLE_KEY": "service-role-key",
    "SUPABASE_JWT_SECRET": "test-jwt-secret-that-is-at-least-32-characters",
    "OPENAI_API_KEY": "sk-test",
    "PINECONE_API_KEY": "pc-test",
    "REDIS_URL": "",
    "STRIPE_SECRET_KEY": "sk_test_123",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
    "STRIPE_PRICE_PRO": "price_pro",
    "STRIPE_PRICE_ENTERPRISE": "price_enterprise",
    "GITHUB_TOKEN": "",
})

import jwt
import pytest
from fastapi.testclient import TestClient

from sitebot.db import client as db_client
from sitebot.ingestion import embeddings as embeddings_module
from sitebot.ingestion.scraper import ScrapedPage
from sitebot.ingestion import vector_store as vector_store_module
from sitebot.ingestion.vector_store import VectorMatch
from sitebot.llm import client as llm_module
from sitebot.chat import service as chat_service_module
from sitebot.main import app
from sitebot.rate_limit.limiter import reset_limiters


# --- In-memory Supabase ---

class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self._db = db
        self._table = table
        self._op = "select"
        self._payload = None
        self._filters = []
        self._order = None
        self._range = None
        self._limit = None

    def select(self, columns: str = "*", count: str | None = None):
        self._op = "select"
        return self

    def insert(self, payload):
        self._op, self._payload = "insert", payload
        return self

    def update(self, payload):
        self._op, self._payload = "update", payload
        return self

    def delete(self):
        self._op = "delete"
        return self

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def in_(self, column, values):
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def order(self, column, desc: bool = False):
        self._order = (column, desc)
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, n):
        self._limit = n
        return self

    def execute(self):
        rows = self._db.tables[self._table]
        if self._op == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [self._db.new_row(item) for item in items]
            rows.extend(inserted)
            return SimpleNamespace(data=[dict(r) for r in inserted], count=None)

        matched = [row for row in rows if all(f(row) for f in self._filters)]
        if self._op == "update":
            for row in matched:
                row.update(self._payload)
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)
        if self._op == "delete":
            self._db.tables[self._table] = [row for row in rows if row not in matched]
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if self._order:
            column, desc = self._order
            matched = sorted(matched, key=lambda r: r.get(column) or "", reverse=desc)
        count = len(matched)
        if self._range:
            matched = matched[self._range[0]:self._range[1] + 1]
        if self._limit is not None:
            matched = matched[:self._limit]
        return SimpleNamespace(data=[dict(r) for r in matched], count=count)


class FakeSupabase:
    def __init__(self):
        self.tables = defaultdict(list)
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)
        self.signed_out = []
        self.auth = SimpleNamespace(admin=SimpleNamespace(sign_out=self.signed_out.append))

    def now(self) -> str:
        # Strictly increasing so ordering by created_at is deterministic
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def new_row(self, item: dict) -> dict:
        now = self.now()
        return {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **item}

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)


# --- AI service fakes ---

class FakeEmbeddings:
    def __init__(self):
        self.calls = []

    async def generate_embedding(self, text):
        self.calls.append(text)
        return [0.1, 0.2, 0.3] if text and text.strip() else []

    async def generate_batch_embeddings(self, texts):
        self.calls.extend(texts)
        return [[0.1, 0.2, 0.3] for t in texts if t and t.strip()]


class FakeVectorStore:
    def __init__(self):
        self.namespaces = defaultdict(dict)
        self.deleted_namespaces = []

    async def upsert(self, namespace, vectors):
        for vector in vectors:
            self.namespaces[namespace][vector.id] = vector
        return len(vectors)

    async def query(self, namespace, vector, top_k=5, filter=None):
        records = list(self.namespaces[namespace].values())[:top_k]
        return [VectorMatch(id=r.id, score=0.87654, metadata=dict(r.metadata)) for r in records]

    async def delete(self, namespace, ids):
        for vector_id in ids:
            self.namespaces[namespace].pop(vector_id, None)

    async def delete_namespace(self, namespace):
        self.deleted_namespaces.append(namespace)
        self.namespaces.pop(namespace, None)

    async def stats(self):
        return {"namespaces": {ns: {"vector_count": len(v)} for ns, v in self.namespaces.items()}}


class FakeScraper:
    """Serves canned pages by URL. Unknown URLs fail like an unreachable site."""

    def __init__(self, pages: dict[str, tuple[str, str]] | None = None):
        self.pages = pages or {}

    def _page(self, url):
        title, content = self.pages[url]
        return ScrapedPage(url=url, title=title, content=content)

    async def scrape_many(self, urls):
        return [self._page(url) for url in dict.fromkeys(urls) if url in self.pages]

    async def crawl(self, start_url, max_depth=2, max_pages=50):
        return [self._page(url) for url in self.pages][:max_pages]


class FakeLLM:
    def __init__(self, reply: str = "Our store opens at 9am."):
        self.reply = reply
        self.requests = []
        self.fail = False
        self.fail_after: int | None = None

    async def generate(self, messages, model, temperature=0.7, max_tokens=500):
        self.requests.append({"messages": messages, "model": model, "temperature": temperature, "max_tokens": max_tokens})
        return {"content": self.reply, "finish_reason": "stop", "input_tokens": 120, "output_tokens": 8}

    async def generate_stream(self, messages, model, temperature=0.7, max_tokens=500):
        self.requests.append({"messages": messages, "model": model, "stream": True})
        if self.fail:
            raise RuntimeError("upstream exploded")
        for i, word in enumerate(self.reply.split(" ")):
            if i == self.fail_after:
                raise RuntimeError("stream cut off")
            yield {"type": "delta", "content": word + " "}
        yield {"type": "finish", "finish_reason": "stop", "usage": {"input_tokens": 120, "output_tokens": 8}}

    async def ping(self):
        return None


# --- Fixtures ---

@pytest.fixture(autouse=True)
def fake_db(monkeypatch):
    db = FakeSupabase()
    db_client.get_supabase.cache_clear()
    monkeypatch.setattr(db_client, "create_client", lambda url, key: db)
    yield db
    db_client.get_supabase.cache_clear()


@pytest.fixture(autouse=True)
def fake_ai(monkeypatch):
    ai = SimpleNamespace(embeddings=FakeEmbeddings(), vector_store=FakeVectorStore(), llm=FakeLLM())
    monkeypatch.setattr(embeddings_module, "_service", ai.embeddings)
    monkeypatch.setattr(vector_store_module, "_store", ai.vector_store)
    monkeypatch.setattr(llm_module, "_client", ai.llm)
    monkeypatch.setattr(chat_service_module, "_service", None)
    return ai


@pytest.fixture(autouse=True)
def fresh_rate_limits():
    reset_limiters()
    yield
    reset_limiters()


@pytest.fixture
def client():
    return TestClient(app)


def make_token(user_id: str, email: str = "user@example.com", expires_in: int = 3600) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def auth_header(user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def workspace(client, auth_header):
    resp = client.post("/api/v1/workspaces", json={"name": "Acme"}, headers=auth_header)
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def bot(client, auth_header, workspace):
    resp = client.post("/api/v1/bots", json={"workspace_id": workspace["id"], "name": "Acme Helper"}, headers=auth_header)
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def active_bot(fake_db, bot):
    for row in fake_db.tables["bots"]:
        if row["id"] == bot["id"]:
            row["status"] = "active"
    return {**bot, "status": "active"}
