from pydantic import BaseModel, Field

DEFAULT_DATA_SOURCE = "LunarCrush Social Sentiment"
DEFAULT_CACHE_STATUS = "Fresh Data"
DEFAULT_MODEL_ID = "unknown"
DEFAULT_SENTIMENT_SCORE = 0.5


class Creator(BaseModel):
    id: str = ""
    handle: str = ""
    display_name: str = ""
    follower_count: int = Field(default=0, ge=0)
    avatar_url: str = ""
    influence_rank: int = Field(default=0, ge=0)
    interactions_24h: int = Field(default=0, ge=0)


class TrendingPost(BaseModel):
    id: str = ""
    title: str = ""
    content: str = ""
    engagement_count: int = Field(default=0, ge=0)
    platform: str = "unknown"
    published_at: str = ""
    permalink: str = ""
    creator: Creator | None = None


class SentimentRecord(BaseModel):
    topic: str
    summary_text: str = ""
    sentiment_score: float = Field(default=DEFAULT_SENTIMENT_SCORE, ge=0.0, le=1.0)
    posts_count: int = Field(default=0, ge=0)
    total_engagement: float = Field(default=0, ge=0)
    posts_in_last_24h: int = Field(default=0, ge=0)
    average_engagement: float = Field(default=0, ge=0)
    top_engagement: float = Field(default=0, ge=0)
    trending_posts: list[TrendingPost] = []
    tweet_suggestions: list[str] = []
    cache_status: str = DEFAULT_CACHE_STATUS
    model_id: str = DEFAULT_MODEL_ID
    data_source_label: str = DEFAULT_DATA_SOURCE
    cached: bool = False
    timestamp: int = 0  # epoch millis
