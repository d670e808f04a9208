from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Fleet Build Tracker"
    debug: bool = False

    # API
    frontend_url: str = "http://localhost:3000"

    # Database
    database_url: str = "sqlite+aiosqlite:///./fleetbuild.db"
    redis_url: str = "redis://localhost:6379"
    redis_connect_attempts: int = 5

    # Weight model (empty = built-in model)
    weight_model_path: str = ""
    seed_demo_fleet: bool = False

    # Per-drone write lock
    drone_lock_ttl: int = 30  # seconds; a crashed holder releases after this
    drone_lock_wait_timeout: float = 5.0
    drone_lock_poll_interval: float = 0.05

    # Notifications
    notify_milestones: bool = True
    notify_item_completions: bool = False
    notify_system_completions: bool = False
    notify_drone_completions: bool = True
    milestone_thresholds: list[float] = [25, 50, 75, 100]
    notification_queue_size: int = 1000
    notification_max_attempts: int = 3

    # Real-time feed
    simulation_enabled: bool = False  # env: SIMULATION_ENABLED
    simulation_update_interval: float = 5.0
    simulation_alert_interval: float = 10.0
    simulation_alert_probability: float = 0.3
    simulation_serials: list[str] = ["S1", "S2", "S3"]
    events_heartbeat_interval: float = 15.0

    # Activity log
    activity_page_size: int = 50
    drone_recent_activity_limit: int = 10


@lru_cache
def get_settings() -> Settings:
    return Settings()
