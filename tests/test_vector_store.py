"""Tests for the Pinecone vector store adapter."""

import pytest
from pinecone.exceptions import NotFoundException

from sitebot.ingestion import vector_store as vector_store_module
from sitebot.ingestion.vector_store import PineconeVectorStore, VectorRecord, VectorStoreError


class FakeIndex:
    def __init__(self):
        self.upserts = []
        self.deletes = []
        self.fail = False
        self.delete_error = None

    def upsert(self, vectors, namespace):
        if self.fail:
            raise RuntimeError("boom")
        self.upserts.append((namespace, vectors))

    def query(self, vector, top_k, include_metadata, namespace, filter=None):
        self.last_query = {"top_k": top_k, "namespace": namespace, "filter": filter}
        return {
            "matches": [
                {"id": "v1", "score": 0.91, "metadata": {"text": "We sell anvils.", "url": "https://acme.test/"}},
                {"id": "v2", "score": 0.5, "metadata": None},
            ]
        }

    def delete(self, namespace, ids=None, delete_all=False):
        if self.delete_error:
            raise self.delete_error
        self.deletes.append({"namespace": namespace, "ids": ids, "delete_all": delete_all})

    def describe_index_stats(self):
        return {"dimension": 1536, "total_vector_count": 2}


class FakePinecone:
    def __init__(self, existing=("sitebot-vectors",), ready_after=0):
        self.existing = list(existing)
        self.created = []
        self.ready_after = ready_after
        self.index = FakeIndex()

    def list_indexes(self):
        return [{"name": name} for name in self.existing]

    def create_index(self, name, dimension, metric, spec):
        self.created.append({"name": name, "dimension": dimension, "metric": metric})
        self.existing.append(name)

    def describe_index(self, name):
        ready = self.ready_after <= 0
        self.ready_after -= 1
        return {"status": {"ready": ready}}

    def Index(self, name):
        return self.index


def _store(pc, **kwargs):
    return PineconeVectorStore(api_key="pc-test", index_name="sitebot-vectors", client=pc, poll_interval=0, **kwargs)


async def test_initialize_uses_existing_index():
    pc = FakePinecone()
    store = _store(pc)
    await store.initialize()
    assert pc.created == []


async def test_initialize_creates_missing_index():
    pc = FakePinecone(existing=(), ready_after=2)
    store = _store(pc, dimension=3)
    await store.initialize()
    assert pc.created == [{"name": "sitebot-vectors", "dimension": 3, "metric": "cosine"}]


async def test_initialize_times_out():
    pc = FakePinecone(existing=(), ready_after=1000)
    with pytest.raises(VectorStoreError, match="timeout"):
        await _store(pc).initialize()


async def test_upsert_batches():
    pc = FakePinecone()
    vectors = [VectorRecord(id=f"v{i}", values=[0.1], metadata={"i": i}) for i in range(250)]
    count = await _store(pc).upsert("bot-1", vectors)
    assert count == 250
    assert [len(batch) for _, batch in pc.index.upserts] == [100, 100, 50]
    assert pc.index.upserts[0][0] == "bot-1"
    assert pc.index.upserts[0][1][0] == {"id": "v0", "values": [0.1], "metadata": {"i": 0}}


async def test_query_maps_matches():
    pc = FakePinecone()
    matches = await _store(pc).query("bot-1", [0.1, 0.2], top_k=3, filter={"url": "https://acme.test/"})
    assert pc.index.last_query == {"top_k": 3, "namespace": "bot-1", "filter": {"url": "https://acme.test/"}}
    assert matches[0].id == "v1"
    assert matches[0].text == "We sell anvils."
    assert matches[1].metadata == {}
    assert matches[1].text is None


async def test_query_empty_vector():
    assert await _store(FakePinecone()).query("bot-1", []) == []


async def test_delete_namespace():
    pc = FakePinecone()
    await _store(pc).delete_namespace("bot-1")
    assert pc.index.deletes == [{"namespace": "bot-1", "ids": None, "delete_all": True}]


async def test_delete_missing_namespace_is_a_noop():
    pc = FakePinecone()
    pc.index.delete_error = NotFoundException(status=404, reason="Namespace not found")
    await _store(pc).delete_namespace("never-trained-bot")


def test_delete_untrained_bot(client, monkeypatch, auth_header, bot):
    pc = FakePinecone()
    pc.index.delete_error = NotFoundException(status=404, reason="Namespace not found")
    monkeypatch.setattr(vector_store_module, "_store", _store(pc))

    resp = client.delete(f"/api/v1/bots/{bot['id']}", headers=auth_header)
    assert resp.status_code == 204


async def test_delete_namespace_failure():
    pc = FakePinecone()
    pc.index.delete_error = RuntimeError("boom")
    with pytest.raises(VectorStoreError, match="delete failed"):
        await _store(pc).delete_namespace("bot-1")


async def test_delete_ids_skips_empty():
    pc = FakePinecone()
    store = _store(pc)
    await store.delete("bot-1", [])
    await store.delete("bot-1", ["v1"])
    assert pc.index.deletes == [{"namespace": "bot-1", "ids": ["v1"], "delete_all": False}]


async def test_stats():
    assert (await _store(FakePinecone()).stats())["total_vector_count"] == 2


async def test_sdk_errors_are_wrapped():
    pc = FakePinecone()
    pc.index.fail = True
    with pytest.raises(VectorStoreError) as exc:
        await _store(pc).upsert("bot-1", [VectorRecord(id="v1", values=[0.1])])
    assert exc.value.service == "pinecone"
