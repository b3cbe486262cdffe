"""
Centralised configuration loaded from environment variables.

All settings live here, never scattered across modules.
Components do not import `settings` themselves: the entry points
(server.py, inspector/app.py) read it once at startup and pass the
values into constructors.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_path: str = "/data/records.db"
    log_level: str = "INFO"

    # Advisory TTL applied to every staged record
    record_ttl_seconds: int = 10800
    purge_interval_seconds: int = 300

    # Queue destinations (HTTP endpoints accepting a JSON body)
    task_queue_url: str = "http://localhost:8001/tasks"
    content_queue_url: str = "http://localhost:8000/content"
    attribute_queue_url: str = "http://localhost:8000/attributes"
    queue_timeout_seconds: float = 10.0

    inspector_author: str = "unnamed-inspector"

    class Config:
        env_file = ".env"


# Single shared instance, read by the entry points only
settings = Settings()
