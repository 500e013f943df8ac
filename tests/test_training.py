"""Tests for the training pipeline."""

import pytest

from sitebot.ingestion.training import TrainingPipeline, vector_id
from conftest import FakeScraper

LONG_PAGE = " ".join(f"Sentence number {i} talks about anvils." for i in range(200))


@pytest.fixture
def bot_row(fake_db):
    fake_db.tables["bots"].append({"id": "bot-1", "workspace_id": "ws-1", "status": "draft", "settings": {}})
    return fake_db.tables["bots"][0]


def _pipeline(fake_ai, pages, **kwargs):
    return TrainingPipeline(FakeScraper(pages), fake_ai.embeddings, fake_ai.vector_store, **kwargs)


def test_vector_id():
    assert vector_id("bot-1", "abc123", 4) == "bot-1_abc123_chunk_4"


async def test_train_from_urls_indexes_chunks(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {"https://acme.test/": ("Acme", LONG_PAGE)}, chunk_tokens=100, overlap_tokens=5)
    result = await pipeline.train_from_urls("bot-1", ["https://acme.test/"])

    assert result.success
    assert result.documents_processed == 1
    assert result.chunks_created > 1
    assert result.embeddings_generated == result.chunks_created

    vectors = fake_ai.vector_store.namespaces["bot-1"]
    assert len(vectors) == result.chunks_created
    first = next(iter(vectors.values()))
    assert first.metadata["bot_id"] == "bot-1"
    assert first.metadata["url"] == "https://acme.test/"
    assert first.metadata["title"] == "Acme"
    assert first.metadata["total_chunks"] == result.chunks_created
    assert first.id == vector_id("bot-1", first.metadata["content_hash"], 0)

    rows = fake_db.tables["embeddings"]
    assert len(rows) == result.chunks_created
    assert all(len(r["content_preview"]) <= 200 for r in rows)
    assert rows[0]["scraped_page_id"] == fake_db.tables["scraped_pages"][0]["id"]

    job = fake_db.tables["crawl_jobs"][0]
    assert job["status"] == "completed"
    assert job["chunks_created"] == result.chunks_created
    assert bot_row["status"] == "active"


async def test_partial_scrape_failure_is_reported(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {"https://acme.test/": ("Acme", "We sell anvils.")})
    result = await pipeline.train_from_urls("bot-1", ["https://acme.test/", "https://gone.test/"])

    assert result.success
    assert result.errors == ["Failed to scrape https://gone.test/"]
    assert fake_db.tables["crawl_jobs"][0]["errors"] == result.errors


async def test_nothing_scraped_fails(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {})
    result = await pipeline.train_from_urls("bot-1", ["https://gone.test/"])

    assert not result.success
    assert "No pages could be scraped" in result.errors
    assert fake_db.tables["crawl_jobs"][0]["status"] == "failed"
    assert bot_row["status"] == "failed"


async def test_empty_page_fails(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {"https://acme.test/": ("Acme", "   ")})
    result = await pipeline.train_from_urls("bot-1", ["https://acme.test/"])

    assert not result.success
    assert "No content extracted from https://acme.test/" in result.errors
    assert bot_row["status"] == "failed"


async def test_retrain_clears_previous_data(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {"https://acme.test/": ("Acme", "We sell anvils.")})
    await pipeline.train_from_urls("bot-1", ["https://acme.test/"])
    pipeline.scraper.pages = {"https://acme.test/": ("Acme", "We now sell hammers.")}

    await pipeline.train_from_urls("bot-1", ["https://acme.test/"], retrain=True)

    assert fake_ai.vector_store.deleted_namespaces == ["bot-1"]
    assert len(fake_db.tables["scraped_pages"]) == 1
    assert fake_db.tables["scraped_pages"][0]["content"] == "We now sell hammers."
    assert [v.metadata["text"] for v in fake_ai.vector_store.namespaces["bot-1"].values()] == ["We now sell hammers."]


async def test_crawl_collects_pages(fake_db, fake_ai, bot_row):
    pages = {
        "https://acme.test/": ("Home", "Welcome to Acme."),
        "https://acme.test/about": ("About", "Acme was founded in 1949."),
    }
    pipeline = _pipeline(fake_ai, pages)
    result = await pipeline.train_from_urls("bot-1", ["https://acme.test/"], crawl=True)

    assert result.documents_processed == 2
    assert {p["url"] for p in fake_db.tables["scraped_pages"]} == set(pages)


async def test_train_from_content(fake_db, fake_ai, bot_row):
    pipeline = _pipeline(fake_ai, {})
    result = await pipeline.train_from_content("bot-1", "Returns are accepted within 30 days.", title="Returns")

    assert result.success
    page = fake_db.tables["scraped_pages"][0]
    assert page["title"] == "Returns"
    assert page["url"].startswith("manual://bot-1/")
    assert fake_db.tables["crawl_jobs"][0]["source"] == "content"


async def test_existing_job_is_reused(fake_db, fake_ai, bot_row):
    fake_db.tables["crawl_jobs"].append({"id": "job-1", "bot_id": "bot-1", "status": "pending"})
    pipeline = _pipeline(fake_ai, {"https://acme.test/": ("Acme", "We sell anvils.")})
    await pipeline.train_from_urls("bot-1", ["https://acme.test/"], job_id="job-1")

    assert len(fake_db.tables["crawl_jobs"]) == 1
    assert fake_db.tables["crawl_jobs"][0]["status"] == "completed"
