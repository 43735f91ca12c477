from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Direct fetch
    direct_fetch_timeout_seconds: float = 10.0
    direct_fetch_user_agent: str = "Mozilla/5.0 (compatible; Harvester/1.0; Web Content Reader)"

    # Headless render (Browserless)
    browserless_api_token: str = ""
    browserless_base_url: str = "https://production-sfo.browserless.io"
    headless_page_timeout_ms: int = 15000
    headless_fetch_timeout_seconds: float = 20.0
    headless_unblock_fetch_timeout_seconds: float = 25.0
    headless_unblock_timeout_query_ms: int = 20000
    headless_max_attempts: int = 2
    headless_retry_base_delay_seconds: float = 0.25
    headless_wait_for_selector_timeout_ms: int = 4000
    headless_settle_delay_ms: int = 800

    # Extraction
    scrape_max_content_length: int = 12000
    scrape_min_content_length: int = 100
    scrape_summary_max_length: int = 500
    main_content_min_length: int = 300
    spa_shell_max_body_length: int = 500

    # Scrape cache (process-local)
    scrape_cache_enabled: bool = True
    scrape_cache_max_entries: int = 100
    scrape_cache_success_ttl_seconds: float = 900.0
    scrape_cache_failure_ttl_seconds: float = 30.0

    # Search provider chain
    search_providers: str = "serper,brave,tavily,duckduckgo"
    serper_api_key: str = ""
    brave_api_key: str = ""
    tavily_api_key: str = ""
    search_timeout_seconds: float = 15.0

    # Parallel research
    research_max_results_per_query: int = 8
    research_max_scrape_urls: int = 8
    research_min_scraped_content_length: int = 100
    research_default_relevance: float = 0.5
    research_scraped_page_relevance: float = 0.9

    # Tool boundary: must exceed direct timeout + headless timeout + overhead
    scrape_tool_timeout_seconds: float = 35.0

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def search_provider_list(self) -> list[str]:
        return [p.strip().lower() for p in self.search_providers.split(",") if p.strip()]


settings = Settings()
