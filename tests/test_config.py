import pytest

from rag_pipeline.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("OLLAMA_BASE_URL", "OLLAMA_MODEL", "OLLAMA_MODEL_FALLBACKS", "CHUNK_SIZE", "RETRIEVAL_TOP_K"):
        monkeypatch.delenv(name, raising=False)

    settings = get_settings()

    assert settings.ollama_base_url == "http://localhost:11434"
    assert settings.embed_model == "nomic-embed-text"
    assert settings.generation_model == "gemma3:1b"
    assert settings.generation_fallbacks == []
    assert (settings.chunk_size, settings.chunk_overlap, settings.retrieval_top_k) == (500, 50, 3)
    assert settings.probe_timeout == 5.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OLLAMA_BASE_URL", '"http://gpu-box:11434/"')
    monkeypatch.setenv("OLLAMA_MODEL_FALLBACKS", "llama3, phi3 ,")
    monkeypatch.setenv("CHUNK_SIZE", "800")
    monkeypatch.setenv("LLM_CLASSIFIER_ENABLED", "off")

    settings = get_settings()

    assert settings.ollama_base_url == "http://gpu-box:11434"
    assert settings.generation_fallbacks == ["llama3", "phi3"]
    assert settings.chunk_size == 800
    assert settings.llm_classifier_enabled is False


def test_malformed_numbers_keep_defaults(monkeypatch):
    monkeypatch.setenv("RETRIEVAL_TOP_K", "three")
    monkeypatch.setenv("OLLAMA_PROBE_TIMEOUT", "soon")

    settings = get_settings()

    assert settings.retrieval_top_k == 3
    assert settings.probe_timeout == 5.0
