# carelink/config/settings.py
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 3000

    # persistence
    store_backend: Literal["json", "sql"] = "json"
    data_file: str = "database.json"
    database_url: str = "sqlite:///carelink.db"
    upload_dir: str = "uploads"

    # push: FCM (empty credentials path -> FCM off), web push (empty VAPID pair -> web push off)
    firebase_credentials: str = ""
    vapid_public: str = ""
    vapid_private: str = ""
    vapid_subject: str = "mailto:you@example.com"
    push_title: str = "AlzAssist"
    push_prune_dead: bool = False

    # realtime
    realtime_policy: Literal["broadcast", "targeted"] = "broadcast"

    # appointment reminders
    reminder_enabled: bool = True
    reminder_interval_seconds: int = 60
    reminder_window_ms: int = 60_000
    reminder_dedup_window_ms: int = 0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
