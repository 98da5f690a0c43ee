from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Redis
    redis_url: str = "redis://localhost:6379/0"
    cache_enabled: bool = True
    route_cache_ttl: int = 7200  # 2 hours, for travel more than a month out

    # Kiwi (Tequila)
    kiwi_api_key: str = ""
    kiwi_base_url: str = "https://api.tequila.kiwi.com"
    kiwi_affiliate_id: str = ""

    # Travelpayouts
    travelpayouts_api_key: str = ""
    travelpayouts_base_url: str = "https://api.travelpayouts.com"
    travelpayouts_marker: str = ""

    # Skyscanner
    skyscanner_api_key: str = ""
    skyscanner_base_url: str = "https://partners.api.skyscanner.net/apiservices"
    skyscanner_affiliate_id: str = ""

    # Exchange rates
    exchange_rate_api_key: str = ""
    exchange_rate_base_url: str = "https://api.exchangerate-api.com/v4"
    exchange_rate_ttl: int = 3600

    # Timeouts (seconds)
    provider_timeout_seconds: float = 30.0
    search_timeout_seconds: float = 90.0

    # Features
    enable_virtual_interlining: bool = True
    enable_affiliate_links: bool = True

    # Pricing
    default_currency: str = "ZAR"
    max_results: int = 3

    # Route synthesis caps
    stitch_max_hubs: int = 10
    stitch_combinations_per_hub: int = 50
    stitch_max_multi_hub: int = 10
    stitch_multi_hub_pairs: int = 5
    stitch_hub_min_frequency: int = 3

    # Connections
    max_connection_minutes: int = 1440  # 24 hours

    # Reference data (airports, hubs, distances): optional JSON override file
    reference_data_path: str = ""

    # Scheduler (cache warm-up for popular routes)
    scheduler_enabled: bool = True
    warmup_routes: str = (
        "JNB-CPT,JNB-DUR,JNB-NBO,JNB-LON,CPT-JNB,CPT-LON,LOS-LON,LOS-JNB,"
        "ACC-LON,ACC-JFK,NBO-DXB,NBO-JNB,ADD-DXB,ADD-LON,CAI-DXB,CAI-LON"
    )
    warmup_days_ahead: int = 1
    warmup_interval_hours: int = 6
    warmup_delay_seconds: float = 2.0  # between searches, for provider rate limits

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def warmup_route_list(self) -> list[tuple[str, str]]:
        pairs = [route.strip().upper().split("-") for route in self.warmup_routes.split(",") if route.strip()]
        return [(pair[0], pair[1]) for pair in pairs if len(pair) == 2]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
