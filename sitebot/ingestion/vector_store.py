"""Pinecone index adapter. One namespace per bot."""

import asyncio
import logging
from dataclasses import dataclass, field

from pinecone import Pinecone, ServerlessSpec
from pinecone.exceptions import NotFoundException

from sitebot.utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100
READY_POLLS = 30


class VectorStoreError(UpstreamServiceError):
    service = "pinecone"


@dataclass
class VectorRecord:
    id: str
    values: list[float]
    metadata: dict = field(default_factory=dict)


@dataclass
class VectorMatch:
    id: str
    score: float
    metadata: dict = field(default_factory=dict)

    @property
    def text(self) -> str | None:
        return self.metadata.get("text")


class PineconeVectorStore:
    """The Pinecone SDK is synchronous; calls run in a worker thread."""

    def __init__(
        self,
        api_key: str,
        index_name: str,
        dimension: int = 1536,
        metric: str = "cosine",
        cloud: str = "aws",
        region: str = "us-east-1",
        client: Pinecone | None = None,
        poll_interval: float = 1.0,
    ):
        self.index_name = index_name
        self.dimension = dimension
        self.metric = metric
        self.cloud = cloud
        self.region = region
        self.poll_interval = poll_interval
        self._pc = client or Pinecone(api_key=api_key)
        self._index = None

    async def initialize(self) -> None:
        if self._index is not None:
            return
        try:
            existing = await asyncio.to_thread(self._pc.list_indexes)
            names = [ix["name"] for ix in existing]
            if self.index_name not in names:
                logger.info("Creating Pinecone index %s (dimension=%d)", self.index_name, self.dimension)
                await asyncio.to_thread(
                    self._pc.create_index,
                    name=self.index_name,
                    dimension=self.dimension,
                    metric=self.metric,
                    spec=ServerlessSpec(cloud=self.cloud, region=self.region),
                )
                await self._wait_until_ready()
            self._index = self._pc.Index(self.index_name)
        except VectorStoreError:
            raise
        except Exception as e:
            raise VectorStoreError(f"Failed to initialize Pinecone: {e}") from e

    async def _wait_until_ready(self) -> None:
        for _ in range(READY_POLLS):
            description = await asyncio.to_thread(self._pc.describe_index, self.index_name)
            if description["status"]["ready"]:
                return
            await asyncio.sleep(self.poll_interval)
        raise VectorStoreError("Index creation timeout")

    async def _call(self, action: str, fn, *args, **kwargs):
        await self.initialize()
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except Exception as e:
            raise VectorStoreError(f"Pinecone {action} failed: {e}") from e

    async def upsert(self, namespace: str, vectors: list[VectorRecord]) -> int:
        await self.initialize()
        for start in range(0, len(vectors), UPSERT_BATCH_SIZE):
            batch = [
                {"id": v.id, "values": v.values, "metadata": v.metadata}
                for v in vectors[start:start + UPSERT_BATCH_SIZE]
            ]
            await self._call("upsert", self._index.upsert, vectors=batch, namespace=namespace)
        return len(vectors)

    async def query(self, namespace: str, vector: list[float], top_k: int = 5, filter: dict | None = None) -> list[VectorMatch]:
        if not vector:
            return []
        await self.initialize()
        kwargs = {"vector": vector, "top_k": top_k, "include_metadata": True, "namespace": namespace}
        if filter:
            kwargs["filter"] = filter
        response = await self._call("query", self._index.query, **kwargs)
        return [
            VectorMatch(id=m["id"], score=m.get("score") or 0.0, metadata=dict(m.get("metadata") or {}))
            for m in response["matches"]
        ]

    async def delete(self, namespace: str, ids: list[str]) -> None:
        if ids:
            await self.initialize()
            await self._call("delete", self._index.delete, ids=ids, namespace=namespace)

    async def delete_namespace(self, namespace: str) -> None:
        await self.initialize()
        try:
            await asyncio.to_thread(self._index.delete, delete_all=True, namespace=namespace)
        except NotFoundException:
            # Serverless indexes 404 on namespaces that never held vectors
            logger.debug("Pinecone namespace %s does not exist", namespace)
        except Exception as e:
            raise VectorStoreError(f"Pinecone delete failed: {e}") from e

    async def stats(self) -> dict:
        await self.initialize()
        stats = await self._call("describe_index_stats", self._index.describe_index_stats)
        return stats.to_dict() if hasattr(stats, "to_dict") else dict(stats)


_store: PineconeVectorStore | None = None


def get_vector_store() -> PineconeVectorStore:
    global _store
    if _store is None:
        from sitebot.config.settings import get_settings

        settings = get_settings()
        _store = PineconeVectorStore(
            api_key=settings.PINECONE_API_KEY,
            index_name=settings.PINECONE_INDEX_NAME,
            dimension=settings.EMBEDDING_DIMENSION,
            cloud=settings.PINECONE_CLOUD,
            region=settings.PINECONE_REGION,
        )
    return _store
