"""LLM-backed article generation (OpenAI-compatible chat completions)."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re

import httpx

from . import config
from .text import normalize_newlines

logger = logging.getLogger(__name__)

BANNED_TITLES: frozenset[str] = frozenset({"图书馆", "咖啡", "蓝牙"})
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "历史", "地理", "品牌", "日常", "科技", "艺术",
    "生物", "人物", "地点", "作品", "物品", "概念",
)

_GENERATE_SYSTEM = (
    "你是一个文字助手，你会被要求给出一个不生僻名词，可以是人物地点作品物品品牌等等的任意东西的名字，"
    "也可以是一个概念，然后给出关于这个词的介绍。你的输出永远是这样的格式 JSON："
    '{"title":"...","body":"..."}，没有额外说明，没有代码块。正文通俗、原创、无敏感内容。'
    "要求 body 使用空行（\\n\\n）分段，段落数为 2~4 段。不要使用列表、编号、标题或 Markdown。"
)
_GENERATE_MULTI_SYSTEM = (
    '你是一个文字助手。请仅返回 JSON：{"candidates":[{"title":"...","body":"..."}, ...]}，'
    "不返回额外说明或代码块。正文通俗、原创、无敏感内容。"
    "要求 body 使用空行（\\n\\n）分段，段落数为 2~4 段。不要使用列表、编号、标题或 Markdown。"
)
_PROOFREAD_SYSTEM = (
    '你是中文文本校对助手。接收 JSON：{"title":"...","body":"..."}，仅返回修正后的 JSON（同样字段），'
    "不要多余文字或代码块。修正错别字、标点、语法，意图不变。"
    "若正文未按段落分隔，请将 body 用空行（\\n\\n）分为 2~4 段，保持意思不变。"
)

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n+")
_WHITESPACE_RE = re.compile(r"\s+")


class ArticleProviderError(Exception):
    """Raised when no usable article could be produced."""


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------

def parse_json_from_text(text: str | None) -> dict | None:
    """Decode the outermost ``{...}`` span of a model reply, if any."""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        obj = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


def parse_candidates(text: str | None) -> list[dict[str, str]]:
    """Extract ``{title, body}`` candidates from a single or multi-candidate reply."""
    obj = parse_json_from_text(text)
    if obj is None:
        return []
    raw = obj.get("candidates")
    if isinstance(raw, list):
        items = [c for c in raw if isinstance(c, dict)]
    else:
        items = [obj]
    result = []
    for item in items:
        title = normalize_newlines(str(item.get("title") or "")).strip()
        body = normalize_newlines(str(item.get("body") or "")).strip()
        if title and body:
            result.append({"title": title, "body": body})
    return result


def split_paragraphs(body: str) -> list[str]:
    text = normalize_newlines(str(body or ""))
    return [p.strip() for p in _PARAGRAPH_SPLIT_RE.split(text) if p.strip()]


def paragraphs_valid(body: str, low: int = 2, high: int = 4) -> bool:
    return low <= len(split_paragraphs(body)) <= high


def normalize_title(title: str) -> str:
    return _WHITESPACE_RE.sub("", str(title or "").strip().lower())


def pick_categories(n: int = 2, pool=DEFAULT_CATEGORIES, rng: random.Random | None = None) -> list[str]:
    rng = rng or random
    return rng.sample(list(pool), k=min(n, len(pool)))


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------

class ArticleProvider:
    """Generates fresh ``{title, body}`` articles with bounded retries.

    Titles already handed out are remembered (normalized) and rejected on
    later calls, as are the banned titles.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        api_url: str | None = None,
        model: str | None = None,
        max_attempts: int | None = None,
        timeout: float | None = None,
        top_p: float | None = None,
        proofread: bool | None = None,
        multi: int = 0,
        retry_delay: tuple[float, float] = (0.2, 0.6),
        avoid: set[str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.api_key = config.BIGMODEL_API_KEY if api_key is None else api_key
        self.api_url = api_url or config.BIGMODEL_API_URL
        self.model = model or config.BIGMODEL_MODEL
        if max_attempts is None:
            max_attempts = config.ARTICLE_MAX_ATTEMPTS
        self.max_attempts = max(1, max_attempts)
        self.timeout = config.ARTICLE_TIMEOUT if timeout is None else timeout
        self.top_p = config.ARTICLE_TOP_P if top_p is None else top_p
        self.proofread_enabled = config.ARTICLE_PROOFREAD if proofread is None else proofread
        self.multi = max(0, multi)
        self.retry_delay = retry_delay
        self.seen: set[str] = {normalize_title(t) for t in (avoid or ())}
        self._transport = transport
        self._rng = rng or random.Random()

    def remember(self, title: str) -> None:
        self.seen.add(normalize_title(title))

    def _acceptable(self, candidate: dict[str, str]) -> bool:
        title, body = candidate["title"], candidate["body"]
        if not paragraphs_valid(body):
            logger.debug("[provider] Rejecting %r: paragraph count out of range.", title)
            return False
        if title in BANNED_TITLES or normalize_title(title) in self.seen:
            logger.debug("[provider] Rejecting %r: banned or already used.", title)
            return False
        return True

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self._transport,
        )

    async def _chat(self, client: httpx.AsyncClient, messages: list[dict], **params) -> str:
        resp = await client.post(
            self.api_url, json={"model": self.model, "messages": messages, **params}
        )
        resp.raise_for_status()
        data = resp.json()
        try:
            return str(data["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError):
            return resp.text

    def _generate_messages(self) -> list[dict]:
        categories = pick_categories(2, rng=self._rng)
        avoid = sorted(BANNED_TITLES | self.seen)[:300]
        avoid_str = f"以下词严禁再次出现：{'、'.join(avoid)}。" if avoid else ""
        cat_str = f"请从这些类别随机选择一个合适的常见名词（不得生僻）：{'、'.join(categories)}。"
        if self.multi > 1:
            system = _GENERATE_MULTI_SYSTEM
            ask = (
                f"请给出{self.multi}个不同的候选，每个候选一个词及其300~400字介绍，"
                "正文用空行（\\n\\n）分为 2~4 段。仅返回 JSON，字段为 candidates。"
            )
        else:
            system = _GENERATE_SYSTEM
            ask = "给出一个词，并提供300~400字介绍，正文用空行（\\n\\n）分为 2~4 段。仅返回 JSON。"
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": f"{cat_str} 出过的词不要再出。{avoid_str} {ask}"},
        ]

    async def generate(self, client: httpx.AsyncClient) -> dict[str, str]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                text = await self._chat(client, self._generate_messages(), top_p=self.top_p)
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("[provider] Attempt %d/%d failed (%s).", attempt, self.max_attempts, exc)
            else:
                logger.debug(
                    "[provider] Attempt %d reply head: %s", attempt, " ".join(text[:240].split())
                )
                candidates = parse_candidates(text)
                self._rng.shuffle(candidates)
                for candidate in candidates:
                    if self._acceptable(candidate):
                        logger.info("[provider] Generated %r on attempt %d.", candidate["title"], attempt)
                        return candidate
                logger.warning(
                    "[provider] Attempt %d/%d produced no usable candidate.", attempt, self.max_attempts
                )
            if attempt < self.max_attempts and self.retry_delay[1] > 0:
                await asyncio.sleep(self._rng.uniform(*self.retry_delay))
        raise ArticleProviderError(f"No usable article after {self.max_attempts} attempts")

    async def proofread(self, client: httpx.AsyncClient, article: dict[str, str]) -> dict[str, str] | None:
        """Ask the model to fix typos and punctuation. None when the reply is unusable."""
        messages = [
            {"role": "system", "content": _PROOFREAD_SYSTEM},
            {
                "role": "user",
                "content": "请校对并仅返回 JSON：" + json.dumps(article, ensure_ascii=False),
            },
        ]
        try:
            text = await self._chat(client, messages, temperature=0.2)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[provider] Proofreading failed (%s). Keeping original text.", exc)
            return None
        candidates = parse_candidates(text)
        if not candidates:
            logger.warning("[provider] Proofreading reply unusable. Keeping original text.")
            return None
        return candidates[0]

    async def provide(self) -> dict[str, str]:
        """Return a new ``{title, body}`` or raise ArticleProviderError."""
        if not self.api_key:
            raise ArticleProviderError("No API key configured (set BIGMODEL_API_KEY)")
        async with self._client() as client:
            article = await self.generate(client)
            self.remember(article["title"])
            if self.proofread_enabled:
                fixed = await self.proofread(client, article)
                if fixed is not None:
                    article = fixed
        self.remember(article["title"])
        return article
