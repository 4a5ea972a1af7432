#!/usr/bin/env python3
"""Generate one article with the LLM provider and print it as JSON.

Usage:
    python scripts/generate_article.py                          # key from BIGMODEL_API_KEY / ZHIPUAI_API_KEY
    python scripts/generate_article.py --key=XXX --tries=6
    python scripts/generate_article.py --avoid seen_titles.json --update-seen
    python scripts/generate_article.py --multi=6 --debug       # 6 candidates per request
    python scripts/generate_article.py --out backend/article_cache.json

Writing to backend/article_cache.json makes the server start on that
article next time.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------
_SCRIPT_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _SCRIPT_DIR.parent
_BACKEND_DIR = _PROJECT_ROOT / "backend"

_SEEN_KEEP = 500


def load_seen(path: str | None) -> list[str]:
    if not path:
        return []
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return []
    return [str(t) for t in data or []]


def save_seen(path: str, seen: list[str], keep: int = _SEEN_KEEP) -> None:
    try:
        Path(path).write_text(
            json.dumps(seen[-keep:], ensure_ascii=False, indent=2), encoding="utf-8"
        )
    except OSError as exc:
        print(f"[generate] Could not save seen titles: {exc}", file=sys.stderr)


async def generate(args: argparse.Namespace) -> int:
    # Add backend to sys.path so we can import the package without installing it
    sys.path.insert(0, str(_BACKEND_DIR))
    from titleguess import config  # noqa: PLC0415
    from titleguess.provider import (  # noqa: PLC0415
        ArticleProvider,
        ArticleProviderError,
        normalize_title,
    )

    api_key = args.key or config.BIGMODEL_API_KEY
    if not api_key:
        print("[generate] Set BIGMODEL_API_KEY / ZHIPUAI_API_KEY or pass --key.", file=sys.stderr)
        return 1

    seen = load_seen(args.avoid)
    provider = ArticleProvider(
        api_key,
        max_attempts=args.tries,
        top_p=args.top_p,
        proofread=not args.no_proofread,
        multi=args.multi,
        avoid=set(seen),
    )

    print(
        f"[generate] Generating (tries: {provider.max_attempts}, top_p: {provider.top_p}, "
        f"multi: {provider.multi or 1}) …"
    )
    try:
        article = await provider.provide()
    except ArticleProviderError as exc:
        print(f"[generate] Failed: {exc}", file=sys.stderr)
        return 2

    if args.update_seen and args.avoid:
        seen.append(normalize_title(article["title"]))
        save_seen(args.avoid, seen)

    text = json.dumps(article, ensure_ascii=False, indent=2)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        print(f"[generate] Saved → {args.out}")
    print(text)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a new article for the guessing game.")
    parser.add_argument("--key", default=None, help="API key (default: from environment)")
    parser.add_argument("--tries", type=int, default=None, help="Maximum generation attempts")
    parser.add_argument("--top-p", type=float, default=None, help="Sampling top_p")
    parser.add_argument("--avoid", default=None, help="JSON file listing titles already used")
    parser.add_argument(
        "--update-seen",
        action="store_true",
        help="Append the new title to the --avoid file (keeps the last 500).",
    )
    parser.add_argument("--out", default=None, help="Also write the article JSON to this file")
    parser.add_argument("--no-proofread", action="store_true", help="Skip the proofreading pass")
    parser.add_argument(
        "--multi", type=int, default=0, help="Ask for N candidates per request and pick one"
    )
    parser.add_argument("--debug", action="store_true", help="Log the head of every model reply")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )
    sys.exit(asyncio.run(generate(args)))


if __name__ == "__main__":
    main()
