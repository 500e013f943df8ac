"""Database table name constants and type references."""

# Table names used by Supabase queries
WORKSPACES = "workspaces"
WORKSPACE_MEMBERS = "workspace_members"
BOTS = "bots"
CONVERSATIONS = "conversations"
MESSAGES = "messages"
SCRAPED_PAGES = "scraped_pages"
EMBEDDINGS = "embeddings"
CRAWL_JOBS = "crawl_jobs"
API_KEYS = "api_keys"
ANALYTICS_EVENTS = "analytics_events"
SUBSCRIPTIONS = "subscriptions"

# Message roles
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_SYSTEM = "system"
VALID_ROLES = {ROLE_USER, ROLE_ASSISTANT, ROLE_SYSTEM}

# Workspace member roles
MEMBER_OWNER = "owner"
MEMBER_ADMIN = "admin"
MEMBER_MEMBER = "member"
MANAGER_ROLES = {MEMBER_OWNER, MEMBER_ADMIN}
ALL_MEMBER_ROLES = {MEMBER_OWNER, MEMBER_ADMIN, MEMBER_MEMBER}

# Bot lifecycle
BOT_DRAFT = "draft"
BOT_TRAINING = "training"
BOT_ACTIVE = "active"
BOT_FAILED = "failed"

# Crawl jobs
JOB_PENDING = "pending"
JOB_PROCESSING = "processing"
JOB_COMPLETED = "completed"
JOB_FAILED = "failed"

# Billing plans
PLAN_FREE = "free"
PLAN_PRO = "pro"
PLAN_ENTERPRISE = "enterprise"
PLANS = (PLAN_FREE, PLAN_PRO, PLAN_ENTERPRISE)
