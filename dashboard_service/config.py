"""
看板服务配置模块
支持从环境变量 / .env 读取配置，大模型密钥只允许通过外部配置注入
"""

from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_news_feeds() -> Dict[str, List[str]]:
    """按语言 / 分类分组的 RSS 源"""
    return {
        "english": [
            "https://feeds.reuters.com/reuters/businessNews",
            "https://feeds.bloomberg.com/markets/news.rss",
        ],
    }


class DashboardSettings(BaseSettings):
    """看板服务配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── 基础配置 ──────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8001)
    DEBUG: bool = Field(default=False)
    ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"]
    )

    # ── 上游数据源 ─────────────────────────────────────────
    ALPHA_VANTAGE_KEY: str = Field(default="demo")
    ALPHA_VANTAGE_BASE_URL: str = Field(default="https://www.alphavantage.co/query")
    FRANKFURTER_BASE_URL: str = Field(default="https://api.frankfurter.app")
    HTTP_TIMEOUT: float = Field(default=10.0)        # 单次外部请求超时（秒）

    # ── 大模型配置 ─────────────────────────────────────────
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_BASE_URL: Optional[str] = Field(default=None)
    OPENAI_MODEL: str = Field(default="gpt-3.5-turbo")
    ANALYSIS_MAX_TOKENS: int = Field(default=300)
    ANALYSIS_TEMPERATURE: float = Field(default=0.7)
    ANALYSIS_TIMEOUT: float = Field(default=20.0)
    ANALYSIS_LENGTH_LIMIT: int = Field(default=200)  # 简评字数上限
    ANALYSIS_NEWS_COUNT: int = Field(default=3)
    ANALYSIS_FALLBACK_TEXT: str = Field(default="AI分析暂时不可用，请稍后再试。")

    # ── 新闻配置 ──────────────────────────────────────────
    NEWS_FEEDS: Dict[str, List[str]] = Field(default_factory=_default_news_feeds)
    NEWS_PER_FEED_LIMIT: int = Field(default=5)
    NEWS_TOTAL_LIMIT: int = Field(default=10)

    # ── 汇率配置 ──────────────────────────────────────────
    DEFAULT_EXCHANGE_RATE: float = Field(default=7.2)

    # ── 定时刷新 ──────────────────────────────────────────
    SCHEDULER_ENABLED: bool = Field(default=True)
    WARMUP_ON_STARTUP: bool = Field(default=True)
    EXCHANGE_RATE_REFRESH_MINUTES: int = Field(default=60)
    QUOTES_REFRESH_MINUTES: int = Field(default=5)
    NEWS_REFRESH_MINUTES: int = Field(default=30)
    ANALYSIS_REFRESH_HOURS: int = Field(default=4)

    # ── 日志配置 ──────────────────────────────────────────
    LOG_LEVEL: str = Field(default="INFO")
    TZ: str = Field(default="Asia/Shanghai")

    @property
    def news_feed_count(self) -> int:
        return sum(len(urls) for urls in self.NEWS_FEEDS.values())


@lru_cache
def get_settings() -> DashboardSettings:
    """获取全局配置（单例）"""
    return DashboardSettings()


settings = get_settings()
