"""Tests for environment-driven settings."""

from unittest.mock import patch

from call_outcomes.config import MAX_PAGE_SIZE, Settings, load_env_file

CLEAN_ENV = {
    "ELEVENLABS_API_KEY": "key",
    "ELEVENLABS_AGENT_ID": "agent_1",
}


def _settings(**env):
    with patch.dict("os.environ", {**CLEAN_ENV, **env}, clear=True):
        return Settings.from_env(load_dotenv_file=False)


class TestSettingsFromEnv:
    def test_defaults(self):
        settings = _settings()

        assert settings.platform_api_key == "key"
        assert settings.platform_agent_id == "agent_1"
        assert settings.page_size == MAX_PAGE_SIZE
        assert settings.inference_model == "callAnalyser"
        assert settings.inference_base_url == "http://localhost:11434/v1"
        assert settings.temperature == 0.3
        assert settings.batch_size == 5
        assert settings.batch_pause == 1.0
        assert settings.generative_enabled is True
        assert settings.platform_timezone == "UTC"
        assert settings.log_dir is None

    def test_page_size_clamped(self):
        assert _settings(ELEVENLABS_PAGE_SIZE="1000").page_size == MAX_PAGE_SIZE
        assert _settings(ELEVENLABS_PAGE_SIZE="0").page_size == 1

    def test_bad_numbers_fall_back_to_default(self):
        settings = _settings(ANALYSIS_BATCH_SIZE="five", ANALYSIS_TIMEOUT="soon")

        assert settings.batch_size == 5
        assert settings.inference_timeout == 30.0

    def test_booleans(self):
        assert _settings(GENERATIVE_ENABLED="false").generative_enabled is False
        assert _settings(GENERATIVE_ENABLED="1").generative_enabled is True
        assert _settings(ELEVENLABS_ENRICH_TRANSCRIPTS="no").enrich_transcripts is False

    def test_inference_host_trailing_slash(self):
        settings = _settings(OLLAMA_HOST="http://gpu-box:11434/", OLLAMA_MODEL="qwen2.5:7b")

        assert settings.inference_base_url == "http://gpu-box:11434/v1"
        assert settings.inference_model == "qwen2.5:7b"

    def test_log_level_uppercased(self):
        assert _settings(LOG_LEVEL="debug").log_level == "DEBUG"


class TestLoadEnvFile:
    def test_missing_file(self, tmp_path):
        assert load_env_file(tmp_path / "missing.env") is False

    def test_does_not_override_existing(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("OLLAMA_MODEL=from-file\nANALYSIS_BATCH_PAUSE=2.5\n")

        with patch.dict("os.environ", {"OLLAMA_MODEL": "from-env"}, clear=True):
            load_env_file(env_file)
            settings = Settings.from_env(load_dotenv_file=False)

        assert settings.inference_model == "from-env"
        assert settings.batch_pause == 2.5
