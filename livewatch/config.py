# livewatch/config.py
from typing import List, Tuple
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # event store
    HISTORY_LIMIT: int = 10
    COOLDOWN_MS: int = 2000
    METADATA_ONLY: bool = False
    SERVER_DEFAULT_LAT: float = 0.0
    SERVER_DEFAULT_LNG: float = 0.0

    # dashboard client
    CLIENT_DEFAULT_LAT: float = 12.9716
    CLIENT_DEFAULT_LNG: float = 77.5946
    TRANSPORT: str = "mqtt"  # mqtt | poll
    MQTT_URL: str = "wss://broker.emqx.io:8084/mqtt"
    MQTT_TOPIC: str = "humanrecog/video/jonathan_feed"
    MQTT_KEEPALIVE: int = 30
    RECONNECT_DELAY_S: float = 1.0
    POLL_INTERVAL_S: float = 2.0
    API_BASE_URL: str = "http://localhost:8000"
    BOOTSTRAP_PRIMARY_URL: str = "http://localhost:5000/detections"
    HTTP_TIMEOUT_S: float = 5.0
    STRIP_PAYLOAD: bool = True
    DRAIN_HZ: float = 60.0
    POSITION_INTERVAL_MS: int = 500

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def server_default_location(self) -> Tuple[float, float]:
        return (self.SERVER_DEFAULT_LAT, self.SERVER_DEFAULT_LNG)

    @property
    def client_default_location(self) -> Tuple[float, float]:
        return (self.CLIENT_DEFAULT_LAT, self.CLIENT_DEFAULT_LNG)

    @property
    def read_url(self) -> str:
        return self.API_BASE_URL.rstrip("/") + "/api/upload-frame"


settings = Settings()
