from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


_DEFAULT_ACTORS_PATH = Path(__file__).resolve().parent.parent / "config" / "actors.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="LEGARDEN_", extra="ignore")

    app_name: str = "LeGarden Controller"
    timezone: str = "Europe/Berlin"

    # Control loop
    tick_seconds: float = 5.0
    device_timeout_seconds: float = 5.0
    publish_timeout_seconds: float = 10.0

    # Telemetry
    telemetry_buffer_capacity: int = Field(default=500, ge=1)
    report_interval_seconds: int = 900  # 0 = no periodic state reports

    # Network supervision
    reconnect_grace_seconds: float = 120.0

    # Actor definitions
    actors_path: str = Field(default=str(_DEFAULT_ACTORS_PATH))

    # Storage / logs
    sqlite_path: str = Field(default="legarden.db")
    log_path: str = Field(default="legarden.log")
    log_level: str = Field(default="INFO")  # DEBUG | INFO | WARNING | ERROR

    # Capability selection: "sim" for development
    device_mode: str = Field(default="sim")    # "sim" | "sonoff" | "gpio"
    network_mode: str = Field(default="sim")   # "sim" | "umts"
    client_mode: str = Field(default="sim")    # "sim" | "http"

    # Sonoff (eWeLink DIY mode)
    sonoff_port: int = 8081

    # UMTS link
    umts_probe_url: str = "https://www.google.com/generate_204"
    umts_probe_seconds: float = 30.0
    umts_probe_timeout_seconds: float = 10.0
    umts_reconnect_command: str = "pon umts"
    umts_reconnect_timeout_seconds: float = 90.0

    # Cloud endpoint
    cloud_url: str = "http://localhost:8080/telemetry"
    cloud_token: str = ""
    device_name: str = "legarden-01"


settings = Settings()
