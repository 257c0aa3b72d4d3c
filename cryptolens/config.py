from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "CL_", "env_file": ".env", "env_file_encoding": "utf-8"}

    auth_username: str = Field(default="admin")
    auth_password: str = Field(min_length=1)
    jwt_secret: str = Field(min_length=32)
    jwt_expire_minutes: int = Field(default=1440)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    cors_origins: str = Field(default="http://localhost:3000")

    # Tool providers
    coingecko_mcp_url: str = Field(default="https://mcp.api.coingecko.com/sse")
    sentiment_mcp_url: str = Field(default="https://mcp-server.looftaxyz.workers.dev/sse")
    mcp_timeout_seconds: float = Field(default=30.0, gt=0)
    mcp_sse_read_timeout_seconds: float = Field(default=300.0, gt=0)

    # Market data
    default_vs_currency: str = Field(default="usd")
    default_watchlist: str = Field(default="bitcoin,ethereum,solana")
    category_page_size: int = Field(default=10, ge=1, le=250)
    max_categories: int = Field(default=3, ge=1)

    # Commentary
    llm_provider: str = Field(default="anthropic", pattern=r"^(openai|anthropic)$")
    llm_model: str = Field(default="claude-sonnet-4-20250514")
    openai_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")

    @property
    def watchlist(self) -> list[str]:
        return [coin.strip() for coin in self.default_watchlist.split(",") if coin.strip()]


settings = Settings()
