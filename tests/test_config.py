from notesearch.core.config import AppSettings


def test_default_values():
    s = AppSettings(_env_file=None)
    assert s.app_name == "NoteSearch-Relay"
    assert s.debug is False
    assert s.port == 8000
    assert s.relay_prefix == "/api/proxy"
    assert s.target_header == "x-base-url"
    assert s.default_target_url == "http://127.0.0.1:8080"
    assert s.target_storage_key == "notesearch.baseUrl"
    assert s.upload_path == "/v1/upload"
    assert s.allowed_upload_extensions == [".fyi", ".md", ".notes"]


def test_env_prefix():
    assert AppSettings.model_config["env_prefix"] == "NOTESEARCH_"


def test_type_coercion(monkeypatch):
    monkeypatch.setenv("NOTESEARCH_DEBUG", "true")
    monkeypatch.setenv("NOTESEARCH_PORT", "9999")
    monkeypatch.setenv("NOTESEARCH_DEFAULT_TARGET_URL", "http://notes.internal:9000")
    s = AppSettings(_env_file=None)
    assert s.debug is True
    assert s.port == 9999
    assert s.default_target_url == "http://notes.internal:9000"


def test_list_setting_from_json_env(monkeypatch):
    monkeypatch.setenv("NOTESEARCH_ALLOWED_UPLOAD_EXTENSIONS", '[".md"]')
    s = AppSettings(_env_file=None)
    assert s.allowed_upload_extensions == [".md"]
