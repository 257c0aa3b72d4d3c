"""Pure extractors over raw sentiment-provider text.

The provider answers in one of three shapes: a bare JSON document, a
markdown report with the JSON embedded under a "Raw API Response" heading,
or a markdown report with nothing but labelled lines. The JSON layers return
the provider's own dict; every markdown extractor returns a partial dict
keyed by ``SentimentRecord`` field names, empty when nothing matched.
"""

import json
import re
from collections.abc import Callable

Extractor = Callable[[str], dict]

_RAW_API_HEADING = re.compile(r"^#+[^\n]*Raw API Response[^\n]*$", re.MULTILINE | re.IGNORECASE)
_FENCE_OPEN = re.compile(r"```(?:json)?[ \t]*\n?")
_TOPIC = re.compile(r"#\s*(\w+)\s+Social\s+Sentiment", re.IGNORECASE)
_SUMMARY_HEADING = re.compile(r"^#+[^\n]*AI-Generated Summary[^\n]*$", re.MULTILINE)
_TRENDING_HEADING = re.compile(r"^#+[^\n]*Trending Posts[^\n]*$", re.MULTILINE)
_NEXT_SECTION = re.compile(r"^##\s", re.MULTILINE)
_HEADING_LINE = re.compile(r"^#+[ \t].*$\n?", re.MULTILINE)
_BOLD_ONLY_LINE = re.compile(r"^\*\*.*\*\*[ \t]*$\n?", re.MULTILINE)
_POST_MARKER = re.compile(r"\d+\.\s+\*\*")
_NUMBER = r"(\d+(?:,\d{3})*(?:\.\d+)?)"


def parse_json_document(text: str) -> dict | None:
    """Return the payload if the whole text is a JSON object."""
    try:
        data = json.loads(text.strip())
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_raw_api_block(text: str) -> dict | None:
    """Return the JSON object fenced under the "Raw API Response" heading."""
    heading = _RAW_API_HEADING.search(text)
    if heading is None:
        return None
    fence = _FENCE_OPEN.search(text, heading.end())
    if fence is None:
        return None
    close = text.find("```", fence.end())
    if close == -1:
        return None
    return parse_json_document(text[fence.end() : close])


def parse_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def _label_value(text: str, label: str) -> str | None:
    match = re.search(rf"\*\*{re.escape(label)}:\*\*[ \t]*(.+?)[ \t]*(?:\n|$)", text)
    return match.group(1) if match else None


def _labelled_number(field: str, label: str) -> Extractor:
    pattern = re.compile(rf"\*\*{re.escape(label)}:\*\*\s*{_NUMBER}")

    def extract(text: str) -> dict:
        match = pattern.search(text)
        return {field: parse_number(match.group(1))} if match else {}

    extract.__name__ = f"extract_{field}"
    return extract


extract_posts_count = _labelled_number("posts_count", "Posts Count (24h)")
extract_sentiment_score = _labelled_number("sentiment_score", "Sentiment Score")
extract_total_engagement = _labelled_number("total_engagement", "Total Engagement")
extract_posts_in_last_24h = _labelled_number("posts_in_last_24h", "Posts in Last 24h")
extract_average_engagement = _labelled_number("average_engagement", "Average Engagement")
extract_top_engagement = _labelled_number("top_engagement", "Top Engagement")


def extract_topic(text: str) -> dict:
    match = _TOPIC.search(text)
    return {"topic": match.group(1).upper()} if match else {}


def extract_metadata(text: str) -> dict:
    fields: dict = {}
    data_source = _label_value(text, "Data Source")
    if data_source:
        fields["data_source_label"] = data_source
    model = _label_value(text, "Model")
    if model:
        fields["model_id"] = model
    cache_status = _label_value(text, "Cache Status")
    if cache_status:
        fields["cache_status"] = cache_status
    timestamp = re.search(r"\*\*Timestamp:\*\*\s*(\d+)", text)
    if timestamp:
        fields["timestamp"] = int(timestamp.group(1))
    return fields


def extract_summary(text: str) -> dict:
    start = _SUMMARY_HEADING.search(text)
    end = _TRENDING_HEADING.search(text)
    if start is None or end is None or end.start() < start.end():
        return {}
    section = text[start.end() : end.start()]
    section = _HEADING_LINE.sub("", section)
    section = _BOLD_ONLY_LINE.sub("", section)
    return {"summary_text": section.strip()}


def _trending_section(text: str) -> str | None:
    heading = _TRENDING_HEADING.search(text)
    if heading is None:
        return None
    section = text[heading.end() :]
    next_section = _NEXT_SECTION.search(section)
    return section[: next_section.start()] if next_section else section


def extract_trending_posts(text: str) -> dict:
    section = _trending_section(text)
    if section is None:
        return {}

    posts = []
    for chunk in _POST_MARKER.split(section)[1:]:
        title = re.match(r"(.*?)\*\*", chunk)
        if title is None:
            continue
        engagement = re.search(rf"\*\*Engagement:\*\*\s*{_NUMBER}", chunk)
        posts.append(
            {
                "title": title.group(1).strip(),
                "engagement": parse_number(engagement.group(1)) if engagement else 0,
                "platform": _label_value(chunk, "Platform") or "unknown",
                "date": _label_value(chunk, "Date") or "",
                "url": _label_value(chunk, "URL") or "",
            }
        )
    return {"trending_posts": posts} if posts else {}


# Field extractors for markdown text, one per field group, in fill order.
MARKDOWN_EXTRACTORS: tuple[Extractor, ...] = (
    extract_topic,
    extract_metadata,
    extract_summary,
    extract_posts_count,
    extract_sentiment_score,
    extract_total_engagement,
    extract_posts_in_last_24h,
    extract_average_engagement,
    extract_top_engagement,
    extract_trending_posts,
)
