"""Configuration via pydantic-settings. Reads from .env or environment."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ===== AGENT API =====
    agent_api_url: str = "https://agent-prod.studio.lyzr.ai/v3/inference/chat/"
    agent_api_key: str = ""
    agent_user_id: str = "trend-dashboard"
    agent_timeout: float = 300.0  # A full pipeline scan can take minutes

    # ===== AGENT IDS =====
    manager_agent_id: str = "69995e040ab3a50ca24853ef"
    hn_agent_id: str = "69995dde1b86f70befdb2317"
    arxiv_agent_id: str = "69995ddf746ef9435cac7e0e"
    classifier_agent_id: str = "69995d8abdf6b4ca4c1bedf7"
    twitter_agent_id: str = "69995e05746ef9435cac7e1d"

    # ===== SCAN PROGRESS (seconds after scan start) =====
    scan_step_delays: list[float] = [3.0, 8.0, 15.0]  # steps 2, 3, 4

    # ===== RESPONSE HANDLING =====
    scan_excerpt_chars: int = 300
    publish_excerpt_chars: int = 200
    raw_response_chars: int = 5000
    publish_keyword_fallback: bool = True
    publish_confirmation_keywords: list[str] = ["posted", "tweet", "success"]

    # ===== SYSTEM =====
    database_url: str = "sqlite+aiosqlite:///./trend_dashboard.db"
    log_level: str = "INFO"
    port: int = 8001

    # ===== DEMO/PRODUCTION MODE =====
    demo_mode: bool = False  # If true, agents return canned responses


settings = Settings()
