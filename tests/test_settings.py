"""Tests for Settings validation."""

import pytest
from pydantic import ValidationError


class TestSettingsDefaults:
    def test_batch_size_default_is_four(self, tmp_path):
        from config.settings import Settings
        s = Settings(_env_file=None, sqlite_db_path=tmp_path / "b.db", log_dir=tmp_path / "logs")
        assert s.chapters_per_batch == 4

    def test_heartbeat_default_is_25_seconds(self, tmp_path):
        from config.settings import Settings
        s = Settings(_env_file=None, sqlite_db_path=tmp_path / "b.db", log_dir=tmp_path / "logs")
        assert s.heartbeat_interval_seconds == 25.0

    def test_cover_styles(self, settings):
        assert settings.front_cover_style == "vivid"
        assert settings.back_cover_style == "photographic"

    def test_words_per_page(self, settings):
        assert settings.words_per_page == 250


class TestModelForSpeed:
    def test_known_presets(self, settings):
        assert settings.model_for_speed("fast") == settings.speed_models["fast"]
        assert settings.model_for_speed("quality") == settings.speed_models["quality"]

    def test_unknown_or_missing_speed_uses_default(self, settings):
        assert settings.model_for_speed(None) == settings.default_chapter_model
        assert settings.model_for_speed("warp") == settings.default_chapter_model


class TestSettingsValidation:
    def test_zero_batch_size_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="chapters_per_batch"):
            Settings(_env_file=None, sqlite_db_path=tmp_path / "b.db", chapters_per_batch=0)

    def test_non_positive_heartbeat_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="[Ii]nterval"):
            Settings(_env_file=None, sqlite_db_path=tmp_path / "b.db", heartbeat_interval_seconds=0)

    def test_negative_recent_chapters_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="context_recent_chapters"):
            Settings(_env_file=None, sqlite_db_path=tmp_path / "b.db", context_recent_chapters=-1)

    def test_excerpt_larger_than_budget_raises(self, tmp_path):
        from config.settings import Settings
        with pytest.raises(ValidationError, match="context_excerpt_chars"):
            Settings(
                _env_file=None,
                sqlite_db_path=tmp_path / "b.db",
                context_max_chars=1000,
                context_excerpt_chars=2000,
            )

    def test_parent_dirs_created(self, tmp_path):
        from config.settings import Settings
        Settings(_env_file=None, sqlite_db_path=tmp_path / "nested" / "b.db")
        assert (tmp_path / "nested").is_dir()
