from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "data/cyphire.db"
    host: str = "0.0.0.0"
    port: int = 8000
    admin_key: str | None = None
    admin_user_id: str = "us_admin"
    message_retention_days: int = 7
    retention_sweep_seconds: int = 60
    max_message_length: int = 2000
    max_attachments: int = 10
    max_attachment_bytes: int = 10 * 1024 * 1024
    max_upload_bytes: int = 50 * 1024 * 1024
    max_page_size: int = 200
    workroom_messages_enabled: bool = True
    blob_dir: str = "data/blobs"
    blob_base_url: str = "/blobs"
    realtime_queue_size: int = 100
    rate_limit_enabled: bool = True
    rate_limit_register: str = "5/hour"
    rate_limit_write: str = "30/minute"
    rate_limit_message: str = "60/minute"
    rate_limit_read: str = "120/minute"

    model_config = {"env_prefix": "CYPHIRE_"}


settings = Settings()
