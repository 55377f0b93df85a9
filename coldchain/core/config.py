from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Cold Chain Monitor"
    timezone: str = "Asia/Kolkata"

    # Store: "memory" for development; "firebase" for the realtime database
    store_mode: str = Field(default="memory")
    store_url: str = "https://example-default-rtdb.firebaseio.com"
    store_auth_token: str = ""
    store_root: str = "cold-chain"

    # Reconnect protections for the streaming store
    store_reconnect_backoff_seconds: float = 1.0
    store_max_backoff_seconds: float = 30.0

    # SMS gateway
    sms_gateway_url: str = "https://www.fast2sms.com/dev/bulkV2"
    sms_api_key: str = ""
    sms_numbers: str = ""          # comma separated, e.g. "9999999999,8888888888"
    sms_timeout_seconds: float = 10.0
    notification_queue_size: int = 100

    # Thresholds used until the store reports its own
    default_temp_min: float = 2.0
    default_temp_max: float = 8.0
    default_humidity_max: float = 75.0
    default_gas_max: float = 400.0

    # Logging
    log_file: str = "coldchain.log"


settings = Settings()
