"""Tests for Pydantic compatibility and no deprecation warnings"""
import warnings
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from core.config import Settings
from ranking.strategies import FeedFilters
from service.dto import FeedResponseDTO, VideoCreateDTO, VideoDTO


def _deprecations(warning_list):
    return [w for w in warning_list if issubclass(w.category, DeprecationWarning)]


class TestPydanticCompatibility:
    """Test DTOs use the current Pydantic API without deprecation warnings"""

    def test_video_dto_from_orm_row(self):
        """VideoDTO reads attributes and splits the stored tag string"""
        row = SimpleNamespace(
            id=3, title="Clip", description=None, tags="fun, , cats", duration=12,
            views=4, likes=1, category_id=None, series_id=None, episode_number=None,
            status="published", created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            updated_at=None,
        )

        with warnings.catch_warnings(record=True) as warning_list:
            warnings.simplefilter("always")
            data = VideoDTO.model_validate(row).model_dump()
            assert _deprecations(warning_list) == []

        assert data["tags"] == ["fun", "cats"]
        assert data["views"] == 4

    def test_feed_response_model_dump(self):
        response = FeedResponseDTO(
            strategy="latest", items=[], page=1, limit=12, total_count=0,
            total_pages=0, has_next_page=False, has_prev_page=False,
        )
        with warnings.catch_warnings(record=True) as warning_list:
            warnings.simplefilter("always")
            data = response.model_dump()
            assert _deprecations(warning_list) == []
        assert data["strategy"] == "latest"

    def test_feed_filters_parse_iso_dates(self):
        filters = FeedFilters(start_date="2025-06-01", end_date="2025-06-08T12:00:00Z")
        assert filters.start_date == datetime(2025, 6, 1)
        assert filters.end_date == datetime(2025, 6, 8, 12, tzinfo=timezone.utc)
        assert filters.preferred_tags == []


class TestVideoCreateValidation:

    def test_valid_payload_is_trimmed(self):
        dto = VideoCreateDTO(title="  Morning run  ", duration=45, tags=["run"])
        assert dto.title == "Morning run"
        assert dto.status == "draft"

    @pytest.mark.parametrize("payload", [
        {"title": "   ", "duration": 10},
        {"title": "", "duration": 10},
        {"title": "x" * 256, "duration": 10},
        {"title": "ok", "duration": 0},
        {"title": "ok", "duration": 10, "episode_number": 0},
        {"title": "ok", "duration": 10, "status": "deleted"},
    ])
    def test_rejects_invalid_payloads(self, payload):
        with pytest.raises(ValidationError):
            VideoCreateDTO(**payload)


class TestSettings:

    def test_settings_build_without_deprecation_warnings(self, monkeypatch):
        monkeypatch.setenv("INTERACTION_RETENTION_DAYS", "30")
        with warnings.catch_warnings(record=True) as warning_list:
            warnings.simplefilter("always")
            settings = Settings()
            assert _deprecations(warning_list) == []

        assert Settings.model_config["env_file"] == ".env"
        assert settings.interaction_retention_days == 30
