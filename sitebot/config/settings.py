"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    APP_URL: str = "http://localhost:8000"
    VERSION: str = "0.1.0"

    # Supabase
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str
    SUPABASE_JWT_SECRET: str

    # OpenAI
    OPENAI_API_KEY: str
    CHAT_MODEL: str = "gpt-4o-mini"
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 500
    CHAT_TOP_K: int = 5

    # Pinecone
    PINECONE_API_KEY: str
    PINECONE_INDEX_NAME: str = "sitebot-vectors"
    PINECONE_CLOUD: str = "aws"
    PINECONE_REGION: str = "us-east-1"
    EMBEDDING_DIMENSION: int = 1536

    # Redis (optional, rate limiting falls back to in-memory counters)
    REDIS_URL: str = ""

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_PRICE_PRO: str = ""
    STRIPE_PRICE_ENTERPRISE: str = ""

    # GitHub
    GITHUB_TOKEN: str = ""
    GITHUB_OWNER: str = ""
    GITHUB_REPO: str = ""

    # CORS
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Rate limiting (requests per minute)
    RATE_LIMIT_STANDARD: int = 60
    RATE_LIMIT_AI: int = 10
    RATE_LIMIT_WIDGET: int = 60

    # Ingestion
    CHUNK_SIZE_TOKENS: int = 512
    CHUNK_OVERLAP_TOKENS: int = 50
    SCRAPER_TIMEOUT_SECONDS: float = 30.0
    SCRAPER_MAX_RETRIES: int = 3
    SCRAPER_CONCURRENCY: int = 5
    CRAWL_MAX_DEPTH: int = 2
    CRAWL_MAX_PAGES: int = 50

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def price_for_plan(self, plan: str) -> str:
        return {"pro": self.STRIPE_PRICE_PRO, "enterprise": self.STRIPE_PRICE_ENTERPRISE}.get(plan, "")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
