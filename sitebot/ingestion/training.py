"""Training pipeline: scrape -> clean -> chunk -> embed -> upsert.

Progress is recorded on a ``crawl_jobs`` row; the bot moves to ``training``
while the pipeline runs and ends ``active`` or ``failed``.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sitebot.bots import repository as bots
from sitebot.config.settings import get_settings
from sitebot.db.client import get_supabase
from sitebot.db.models import (
    BOT_ACTIVE,
    BOT_FAILED,
    BOT_TRAINING,
    EMBEDDINGS,
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PROCESSING,
    SCRAPED_PAGES,
)
from sitebot.ingestion.chunker import chunk_text, clean_content, content_hash
from sitebot.ingestion.embeddings import EmbeddingService, get_embedding_service
from sitebot.ingestion.scraper import ScrapedPage, WebScraper
from sitebot.ingestion.vector_store import PineconeVectorStore, VectorRecord, get_vector_store
from sitebot.llm.token_counter import count_tokens

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


@dataclass
class TrainingResult:
    documents_processed: int = 0
    chunks_created: int = 0
    embeddings_generated: int = 0
    errors: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.documents_processed > 0 and self.embeddings_generated > 0


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def vector_id(bot_id: str, page_hash: str, index: int) -> str:
    return f"{bot_id}_{page_hash}_chunk_{index}"


class TrainingPipeline:
    def __init__(
        self,
        scraper: WebScraper,
        embeddings: EmbeddingService,
        vector_store: PineconeVectorStore,
        chunk_tokens: int = 512,
        overlap_tokens: int = 50,
    ):
        self.scraper = scraper
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.chunk_tokens = chunk_tokens
        self.overlap_tokens = overlap_tokens

    async def _collect_pages(self, urls: list[str], crawl: bool) -> list[ScrapedPage]:
        if not crawl:
            return await self.scraper.scrape_many(urls)
        settings = get_settings()
        pages: dict[str, ScrapedPage] = {}
        for url in urls:
            for page in await self.scraper.crawl(url, settings.CRAWL_MAX_DEPTH, settings.CRAWL_MAX_PAGES):
                pages.setdefault(page.url, page)
        return list(pages.values())

    async def _index_page(self, bot_id: str, page: ScrapedPage, result: TrainingResult) -> None:
        content = clean_content(page.content)
        if not content:
            result.errors.append(f"No content extracted from {page.url}")
            return

        page_hash = content_hash(content)
        chunks = chunk_text(content, self.chunk_tokens, self.overlap_tokens, metadata={"url": page.url})
        vectors = await self.embeddings.generate_batch_embeddings([c.text for c in chunks])

        records = [
            VectorRecord(
                id=vector_id(bot_id, page_hash, chunk.index),
                values=values,
                metadata={
                    "bot_id": bot_id,
                    "url": page.url,
                    "title": page.title,
                    "text": chunk.text,
                    "chunk_index": chunk.index,
                    "total_chunks": len(chunks),
                    "content_hash": page_hash,
                },
            )
            for chunk, values in zip(chunks, vectors)
        ]
        await self.vector_store.upsert(bot_id, records)

        db = get_supabase()
        page_row = db.table(SCRAPED_PAGES).insert({
            "bot_id": bot_id,
            "url": page.url,
            "title": page.title,
            "content": content,
            "content_hash": page_hash,
            "metadata": page.metadata,
            "scraped_at": page.scraped_at.isoformat(),
        }).execute().data[0]

        if records:
            db.table(EMBEDDINGS).insert([
                {
                    "bot_id": bot_id,
                    "scraped_page_id": page_row["id"],
                    "vector_id": record.id,
                    "chunk_index": record.metadata["chunk_index"],
                    "content_preview": record.metadata["text"][:PREVIEW_CHARS],
                    "token_count": count_tokens(record.metadata["text"]),
                }
                for record in records
            ]).execute()

        result.documents_processed += 1
        result.chunks_created += len(chunks)
        result.embeddings_generated += len(records)

    async def _run(self, bot_id: str, pages_fn, source: str, job_id: str | None, retrain: bool, urls: list[str]) -> TrainingResult:
        start = time.time()
        result = TrainingResult()
        if job_id is None:
            job_id = bots.create_job(bot_id, urls, source)["id"]

        bots.update_job(job_id, {"status": JOB_PROCESSING, "started_at": _now()})
        bots.set_status(bot_id, BOT_TRAINING)

        try:
            if retrain:
                await self.vector_store.delete_namespace(bot_id)
                bots.delete_training_data(bot_id)

            pages = await pages_fn()
            scraped_urls = {p.url for p in pages}
            result.errors.extend(f"Failed to scrape {url}" for url in urls if url not in scraped_urls and source == "urls")
            if not pages:
                raise RuntimeError("No pages could be scraped")

            for page in pages:
                await self._index_page(bot_id, page, result)
            if not result.embeddings_generated:
                raise RuntimeError("No content could be indexed")
        except Exception as e:
            logger.exception("Training failed for bot %s", bot_id)
            result.errors.append(str(e))
            result.duration_ms = int((time.time() - start) * 1000)
            bots.update_job(job_id, {"status": JOB_FAILED, "error": str(e), "completed_at": _now()})
            bots.set_status(bot_id, BOT_FAILED)
            return result

        result.duration_ms = int((time.time() - start) * 1000)
        bots.update_job(job_id, {
            "status": JOB_COMPLETED,
            "pages_scraped": result.documents_processed,
            "chunks_created": result.chunks_created,
            "errors": result.errors,
            "completed_at": _now(),
        })
        bots.set_status(bot_id, BOT_ACTIVE, last_trained_at=_now())
        logger.info(
            "Trained bot %s: %d documents, %d chunks in %dms",
            bot_id, result.documents_processed, result.chunks_created, result.duration_ms,
        )
        return result

    async def train_from_urls(
        self,
        bot_id: str,
        urls: list[str],
        retrain: bool = False,
        job_id: str | None = None,
        crawl: bool = False,
    ) -> TrainingResult:
        async def pages():
            return await self._collect_pages(urls, crawl)

        return await self._run(bot_id, pages, "urls", job_id, retrain, urls)

    async def train_from_content(
        self,
        bot_id: str,
        content: str,
        title: str = "Manual content",
        url: str | None = None,
        job_id: str | None = None,
    ) -> TrainingResult:
        source_url = url or f"manual://{bot_id}/{content_hash(content)}"

        async def pages():
            return [ScrapedPage(url=source_url, title=title, content=content)]

        return await self._run(bot_id, pages, "content", job_id, False, [source_url])


def get_training_pipeline() -> TrainingPipeline:
    settings = get_settings()
    scraper = WebScraper(
        timeout=settings.SCRAPER_TIMEOUT_SECONDS,
        max_retries=settings.SCRAPER_MAX_RETRIES,
        concurrency=settings.SCRAPER_CONCURRENCY,
    )
    return TrainingPipeline(
        scraper,
        get_embedding_service(),
        get_vector_store(),
        chunk_tokens=settings.CHUNK_SIZE_TOKENS,
        overlap_tokens=settings.CHUNK_OVERLAP_TOKENS,
    )
