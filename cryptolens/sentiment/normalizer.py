"""Turn raw sentiment-provider output into a canonical ``SentimentRecord``.

Layers, in precedence order:

1. the whole text as a JSON object (used as the only source),
2. the JSON block under the "Raw API Response" heading,
3. one markdown extractor per field, for whatever is still missing,
4. model defaults.

Parsing problems never fail the call; only an empty payload does.
"""

import math
import time
from collections.abc import Callable
from typing import Any

import structlog

from cryptolens.exceptions import NoContentError, ProviderReportedError, UnparseableResponseError
from cryptolens.sentiment.parsers import MARKDOWN_EXTRACTORS, parse_json_document, parse_raw_api_block
from cryptolens.sentiment.schemas import Creator, SentimentRecord, TrendingPost
from cryptolens.sessions.schemas import ToolResult

logger = structlog.get_logger()

PROVIDER = "sentiment"
SENTIMENT_TOOL = "get_social_sentiment"

# Canonical field -> provider paths, tried in order: direct field, nested
# analytics.* field, then a same-meaning sibling.
FIELD_PATHS: dict[str, tuple[str, ...]] = {
    "topic": ("topic",),
    "summary_text": ("summary", "summaryText"),
    "sentiment_score": ("sentimentScore", "analytics.sentimentScore"),
    "posts_count": ("postsCount", "analytics.postsCount", "analytics.posts24h"),
    "total_engagement": ("totalEngagement", "analytics.totalEngagement", "engagement"),
    "posts_in_last_24h": ("postsInLast24h", "analytics.posts24h", "postsCount"),
    "average_engagement": ("averageEngagement", "analytics.averageEngagement"),
    "top_engagement": ("topEngagement", "analytics.topEngagement"),
    "tweet_suggestions": ("tweetSuggestions",),
    "trending_posts": ("trendingPosts",),
    "cache_status": ("cacheStatus",),
    "model_id": ("model", "modelId"),
    "data_source_label": ("dataSource", "dataSourceLabel"),
    "cached": ("cached",),
    "timestamp": ("timestamp",),
}

_INTEGER_FIELDS = {"posts_count", "posts_in_last_24h", "timestamp"}
_FLOAT_FIELDS = {"total_engagement", "average_engagement", "top_engagement"}
_STRING_FIELDS = {"summary_text", "cache_status", "model_id", "data_source_label"}


def to_number(value: Any) -> float | None:
    """Coerce ints, floats and numeric strings (thousands separators allowed).

    NaN and infinities count as missing.
    """
    if isinstance(value, bool) or value is None:
        return None
    try:
        if isinstance(value, int | float):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.replace(",", "").strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def normalize_score(value: float) -> float:
    """Bring a 0-100 or 0-1 score onto the 0-1 scale."""
    if value > 1:
        value = value / 100
    return min(max(value, 0.0), 1.0)


def _lookup(source: dict, path: str) -> Any:
    node: Any = source
    for key in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _convert(field: str, value: Any) -> Any:
    if field in _INTEGER_FIELDS:
        number = to_number(value)
        return None if number is None else max(int(number), 0)
    if field in _FLOAT_FIELDS:
        number = to_number(value)
        return None if number is None else max(number, 0.0)
    if field == "sentiment_score":
        number = to_number(value)
        return None if number is None else normalize_score(number)
    if field == "topic":
        return value.strip().upper() if isinstance(value, str) and value.strip() else None
    if field in _STRING_FIELDS:
        return value.strip() if isinstance(value, str) and value.strip() else None
    if field == "cached":
        return value if isinstance(value, bool) else None
    if field == "tweet_suggestions":
        return [str(item) for item in value] if isinstance(value, list) else None
    if field == "trending_posts":
        # an empty list leaves the markdown post extractor a chance
        return value if isinstance(value, list) and value else None
    return value


def reconcile(source: dict) -> dict:
    """Map a provider JSON object onto canonical fields it actually supplies."""
    fields: dict = {}
    for field, paths in FIELD_PATHS.items():
        for path in paths:
            converted = _convert(field, _lookup(source, path))
            if converted is not None:
                fields[field] = converted
                break
    return fields


def _build_creator(raw: Any) -> Creator | None:
    if not isinstance(raw, dict):
        return None
    return Creator(
        id=str(raw.get("id") or ""),
        handle=str(raw.get("name") or raw.get("handle") or ""),
        display_name=str(raw.get("displayName") or ""),
        follower_count=max(int(to_number(raw.get("followers")) or 0), 0),
        avatar_url=str(raw.get("avatar") or ""),
        influence_rank=max(int(to_number(raw.get("rank")) or 0), 0),
        interactions_24h=max(int(to_number(raw.get("interactions24h")) or 0), 0),
    )


def build_trending_posts(raw_posts: list) -> list[TrendingPost]:
    """Build posts in provider rank order, dropping repeated ids."""
    posts: list[TrendingPost] = []
    seen: set[str] = set()
    for raw in raw_posts:
        if not isinstance(raw, dict):
            continue
        post_id = str(raw.get("id") or "")
        if post_id and post_id in seen:
            continue
        seen.add(post_id)

        title = str(raw.get("title") or "")
        engagement = to_number(raw.get("interactions")) or to_number(raw.get("engagement")) or 0
        posts.append(
            TrendingPost(
                id=post_id,
                title=title,
                content=str(raw.get("content") or title),
                engagement_count=max(int(engagement), 0),
                platform=str(raw.get("platform") or "unknown"),
                published_at=str(raw.get("date") or ""),
                permalink=str(raw.get("url") or ""),
                creator=_build_creator(raw.get("creator")),
            )
        )
    return posts


def _check_success(source: dict) -> None:
    if source.get("success") is False:
        raise ProviderReportedError(PROVIDER, str(source.get("error") or "provider reported failure"))


def _fill_from_markdown(fields: dict, text: str, extractors: tuple[Callable[[str], dict], ...]) -> None:
    for extractor in extractors:
        for field, value in extractor(text).items():
            if field not in fields:
                fields[field] = _convert(field, value)


def extract_fields(text: str) -> dict:
    """Run the layered parse and return the canonical fields found."""
    document = parse_json_document(text)
    if document is not None:
        _check_success(document)
        logger.debug("sentiment_parse_layer", layer="json_document")
        return reconcile(document)

    fields: dict = {}
    block = parse_raw_api_block(text)
    if block is not None:
        _check_success(block)
        fields = reconcile(block)
        logger.debug("sentiment_parse_layer", layer="raw_api_block", fields=sorted(fields))

    _fill_from_markdown(fields, text, MARKDOWN_EXTRACTORS)
    logger.debug("sentiment_parse_layer", layer="markdown", fields=sorted(fields))
    return {field: value for field, value in fields.items() if value is not None}


def normalize_sentiment(result: ToolResult, topic: str) -> SentimentRecord:
    if not result.texts:
        raise NoContentError(PROVIDER, SENTIMENT_TOOL)
    text = result.first_text
    if not text.strip():
        raise UnparseableResponseError(PROVIDER, "empty text content")
    if result.is_error:
        logger.warning("sentiment_tool_error_result", topic=topic, text=text[:200])

    fields = extract_fields(text)
    fields["trending_posts"] = build_trending_posts(fields.get("trending_posts", []))
    fields.setdefault("topic", topic.strip().upper())
    fields.setdefault("timestamp", int(time.time() * 1000))

    record = SentimentRecord(**fields)
    logger.info(
        "sentiment_normalized",
        topic=record.topic,
        sentiment_score=record.sentiment_score,
        posts_count=record.posts_count,
        trending_posts=len(record.trending_posts),
    )
    return record
