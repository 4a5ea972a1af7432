"""Centralised runtime configuration loaded from environment variables."""

import os

# OpenAI-compatible chat-completions endpoint used to generate articles
BIGMODEL_API_KEY: str = os.getenv("BIGMODEL_API_KEY") or os.getenv("ZHIPUAI_API_KEY", "")
BIGMODEL_API_URL: str = os.getenv(
    "BIGMODEL_API_URL", "https://open.bigmodel.cn/api/paas/v4/chat/completions"
)
BIGMODEL_MODEL: str = os.getenv("BIGMODEL_MODEL", "glm-4.5-flash")

ARTICLE_MAX_ATTEMPTS: int = int(os.getenv("ARTICLE_MAX_ATTEMPTS", "3"))
ARTICLE_TIMEOUT: float = float(os.getenv("ARTICLE_TIMEOUT", "8.0"))
ARTICLE_TOP_P: float = float(os.getenv("ARTICLE_TOP_P", "0.9"))
ARTICLE_PROOFREAD: bool = os.getenv("ARTICLE_PROOFREAD", "true").lower() in ("1", "true", "yes")
ARTICLE_PATH: str = os.getenv("ARTICLE_PATH", "")

SSE_KEEPALIVE_SECONDS: float = float(os.getenv("SSE_KEEPALIVE_SECONDS", "15"))
SSE_QUEUE_SIZE: int = int(os.getenv("SSE_QUEUE_SIZE", "8"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
