from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True

    # ==========================================================================
    # SERVER
    # ==========================================================================
    server_host: str = "0.0.0.0"
    server_port: int = 3000
    enable_https: bool = False
    ssl_cert_path: str = "./certs/cert.pem"
    ssl_key_path: str = "./certs/key.pem"

    # ==========================================================================
    # OPENAI (risk oracle)
    # ==========================================================================
    openai_api_key: str = ""
    openai_model: str = "gpt-4-turbo"
    openai_max_tokens: int = 800
    openai_temperature: float = 0.7
    api_timeout: int = 60000  # Oracle request timeout in milliseconds

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Guards /admin; optional in dev

    # ==========================================================================
    # RATE LIMITING / CONCURRENCY
    # ==========================================================================
    max_urls_per_day: int = 100  # Max scans per client per window
    rate_limit_window: int = 86400  # Window in seconds (fixed window, 1 day)
    max_concurrent_requests: int = 5

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_allowed_origins: str = "http://localhost:3000"  # Comma-separated, or "*"

    # ==========================================================================
    # PAGE FETCHING
    # ==========================================================================
    page_load_timeout: int = 30000  # milliseconds
    page_settle_delay: int = 1000  # milliseconds after DOMContentLoaded
    enable_javascript: bool = True
    browser_width: int = 1280
    browser_height: int = 800
    browser_headless: bool = True
    browser_reuse: bool = True  # Keep one browser alive across scans
    browser_executable_path: str = ""  # Empty = Playwright-managed Chromium
    block_resources: bool = False  # Skip images, media and fonts
    full_page_screenshot: bool = False
    screenshot_quality: int = 80
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # ==========================================================================
    # PROXY
    # ==========================================================================
    use_proxy: bool = False
    proxy_server: str = ""
    proxy_auth_username: str = ""
    proxy_auth_password: str = ""

    # ==========================================================================
    # CACHING
    # ==========================================================================
    enable_cache: bool = False
    cache_ttl: int = 3600  # seconds
    max_cache_items: int = 1000
    cache_sweep_interval: int = 60  # seconds

    # ==========================================================================
    # RISK THRESHOLDS (0-100 scale)
    # ==========================================================================
    low_risk_threshold: float = 20.0  # Score >= this = Low (below = Safe)
    medium_risk_threshold: float = 40.0
    high_risk_threshold: float = 60.0
    critical_risk_threshold: float = 80.0
    region_min_score: float = 30.0  # Below this, pages are not annotated
    region_fallback_score: float = 70.0  # Generic region when locating fails

    # ==========================================================================
    # ORACLE INPUT BUDGET
    # ==========================================================================
    body_text_budget: int = 3000  # characters of body text sent to the oracle

    # ==========================================================================
    # LOGGING
    # ==========================================================================
    log_level: str = "INFO"
    log_file_path: str = "./logs/app.log"
    log_retention_days: int = 30  # rotated files kept
    log_max_bytes: int = 5242880  # 5MB
    console_logging: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_allowed_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    @property
    def api_timeout_seconds(self) -> float:
        return self.api_timeout / 1000.0

    @property
    def proxy_settings(self):
        """Playwright proxy dict, or None when proxying is off."""
        if not self.use_proxy or not self.proxy_server:
            return None
        proxy = {"server": self.proxy_server}
        if self.proxy_auth_username:
            proxy["username"] = self.proxy_auth_username
            proxy["password"] = self.proxy_auth_password
        return proxy


settings = Settings()
