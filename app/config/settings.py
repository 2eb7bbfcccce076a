from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


APNS_PRODUCTION_HOST = "api.push.apple.com"
APNS_SANDBOX_HOST = "api.sandbox.push.apple.com"


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required to read device_tokens past RLS

    # APNs (token-based auth, .p8 key)
    apns_key_id: str = ""
    apns_team_id: str = ""
    apns_private_key: str = ""  # PEM or bare base64 body; literal "\n" sequences allowed
    bundle_id: str = "com.joealapat.SocialTen"
    apns_environment: str = "development"  # "production" for TestFlight/App Store builds
    apns_timeout_seconds: float = 10.0

    # Delivery policy
    default_timezone: str = "America/New_York"
    daily_notification_limit: int = 0  # 0 disables the daily cap
    same_type_cooldown_minutes: int = 0  # 0 disables the same-type cooldown

    # Scheduled notifications (queue, daily reminders)
    scheduler_enabled: bool = False
    scheduler_interval_seconds: int = 300
    queue_batch_size: int = 100

    # App
    app_name: str = "ten-push-service"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "*"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def apns_host(self) -> str:
        if self.apns_environment.strip().lower() == "production":
            return APNS_PRODUCTION_HOST
        return APNS_SANDBOX_HOST

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
