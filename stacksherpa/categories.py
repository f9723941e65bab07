"""Category aliases.

Maps free-text category names to canonical category ids. Anything not in
the table passes through unchanged (lower-cased and trimmed).
"""

from __future__ import annotations

CATEGORY_ALIASES: dict[str, str] = {
    # email
    "transactional email": "email",
    "transactional-email": "email",
    "mail": "email",
    "smtp": "email",
    # payments
    "payment": "payments",
    "payment processing": "payments",
    "billing": "payments",
    "subscriptions": "payments",
    # auth
    "authentication": "auth",
    "login": "auth",
    "user management": "auth",
    "identity": "auth",
    # sms
    "texting": "sms",
    "messaging": "sms",
    # storage
    "file storage": "storage",
    "uploads": "storage",
    "blobs": "storage",
    "s3": "storage",
    # database
    "postgres": "database",
    "mysql": "database",
    "db": "database",
    "sql": "database",
    # monitoring
    "error tracking": "monitoring",
    "observability": "monitoring",
    "logging": "monitoring",
    "apm": "monitoring",
    "audit log": "monitoring",
    "audit trail": "monitoring",
    "compliance": "monitoring",
    "governance": "monitoring",
    # search
    "full-text search": "search",
    # push
    "push notifications": "push",
    "notifications": "push",
    # ai
    "llm": "ai",
    "language model": "ai",
    "gpt": "ai",
    "claude": "ai",
    "agent framework": "ai",
    "ai agents": "ai",
    "langchain": "ai",
    "ai workflow": "ai",
    "orchestration": "ai",
    "ai memory": "ai",
    "long-term memory": "ai",
    "context management": "ai",
    "document parsing": "ai",
    "document extraction": "ai",
    "chunking": "ai",
    "ocr": "ai",
    "pdf parsing": "ai",
    # finance
    "stock data": "finance",
    "market data": "finance",
    "stock api": "finance",
    "stocks": "finance",
    "stock market": "finance",
    "financial api": "finance",
    "finance": "finance",
    "brokerage": "finance",
    "stock trading": "finance",
    "trade execution": "finance",
    "order execution": "finance",
    "broker": "finance",
    "buy stocks": "finance",
    "sell stocks": "finance",
    "crypto trading": "finance",
    # maps
    "geocoding": "maps",
    "mapping": "maps",
    "geolocation": "maps",
    # jobs
    "background jobs": "jobs",
    "job queue": "jobs",
    "task queue": "jobs",
    "workers": "jobs",
    "cron": "jobs",
    # vector-db
    "vector database": "vector-db",
    "vector store": "vector-db",
    "embeddings": "vector-db",
    "pinecone": "vector-db",
    "rag": "vector-db",
    "semantic search": "vector-db",
    # ai-audio
    "text to speech": "ai-audio",
    "tts": "ai-audio",
    "speech to text": "ai-audio",
    "stt": "ai-audio",
    "audio generation": "ai-audio",
    "voice ai": "ai-audio",
    "voice synthesis": "ai-audio",
    "transcription": "ai-audio",
    "music generation": "ai-audio",
    # ai-video
    "video generation": "ai-video",
    "text to video": "ai-video",
    "ai video": "ai-video",
    "video ai": "ai-video",
    # ai-image
    "image generation": "ai-image",
    "text to image": "ai-image",
    "ai image": "ai-image",
    "image ai": "ai-image",
    "diffusion": "ai-image",
    "stable diffusion": "ai-image",
    "dall_e": "ai-image",
    "midjourney": "ai-image",
    # feature-flags
    "feature flag": "feature-flags",
    "feature flags": "feature-flags",
    "feature toggle": "feature-flags",
    "a/b testing": "feature-flags",
    # message-queue
    "message queue": "message-queue",
    "message broker": "message-queue",
    "kafka": "message-queue",
    "rabbitmq": "message-queue",
    "pubsub": "message-queue",
    "event streaming": "message-queue",
    # cache
    "cache": "cache",
    "redis": "cache",
    "memcached": "cache",
    "key value": "cache",
    "kv": "cache",
    "in memory": "cache",
    # realtime
    "realtime": "realtime",
    "websocket": "realtime",
    "websockets": "realtime",
    "server sent events": "realtime",
    "sse": "realtime",
    "live updates": "realtime",
    "presence": "realtime",
    # chat
    "chat": "chat",
    "live chat": "chat",
    "chat api": "chat",
    "in-app messaging": "chat",
    # hosting
    "hosting": "hosting",
    "deployment": "hosting",
    "paas": "hosting",
    "cloud hosting": "hosting",
    # cdn
    "cdn": "cdn",
    "content delivery": "cdn",
    "edge network": "cdn",
    # cms
    "cms": "cms",
    "content management": "cms",
    "headless cms": "cms",
    # media
    "media": "media",
    "media processing": "media",
    "image processing": "media",
    "video streaming": "media",
    "video hosting": "media",
    "live streaming": "media",
    # web-search
    "web search": "web-search",
    "web retrieval": "web-search",
    "serp": "web-search",
    "web scraping api": "web-search",
}


def normalize_category(category: str, aliases: dict[str, str] | None = None) -> str:
    """Map a category name to its canonical id."""
    table = CATEGORY_ALIASES if aliases is None else aliases
    lower = category.strip().lower()
    return table.get(lower, lower)
