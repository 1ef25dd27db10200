from pydantic_settings import BaseSettings, SettingsConfigDict

class AppSettings(BaseSettings):
    app_name: str = "NoteSearch-Relay"
    version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"

    # Relay
    relay_prefix: str = "/api/proxy"  # Inbound paths under this prefix are forwarded
    settings_prefix: str = "/api/settings"
    target_header: str = "x-base-url"  # Control header carrying the per-call target, never forwarded
    default_target_url: str = "http://127.0.0.1:8080"

    # Persisted target (one value under one key, no schema versioning)
    target_storage_key: str = "notesearch.baseUrl"
    target_store_path: str = ".notesearch/settings.json"

    # Client
    relay_url: str = "http://127.0.0.1:8000"  # Where ApiClient reaches the relay
    upload_path: str = "/v1/upload"
    allowed_upload_extensions: list[str] = [".fyi", ".md", ".notes"]

    # Fake backend
    fake_backend_host: str = "0.0.0.0"
    fake_backend_port: int = 8080
    fake_backend_upload_enabled: bool = True

    model_config = SettingsConfigDict(env_prefix="NOTESEARCH_", env_file=".env", env_file_encoding="utf-8")

# Load settings
settings = AppSettings()
