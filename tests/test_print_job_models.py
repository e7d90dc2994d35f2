"""
Unit tests for print queue models and settings normalization.
"""

from pathlib import Path

import pytest

from models.print_job import (
    DEFAULT_SETTINGS,
    DocumentSettings,
    JobDescriptor,
    normalize_settings,
)
from models.upload import SessionState, UploadPlan, UploadProgress, UploadStatus, UploadUnit


# Tests for normalize_settings

class TestNormalizeSettings:
    """Quantity clamping."""

    @pytest.mark.parametrize("quantity", [0, -1, -100])
    def test_non_positive_quantity_clamped_to_one(self, quantity):
        """Quantities below 1 become 1."""
        result = normalize_settings(DocumentSettings(quantity=quantity, is_a3=True))

        assert result.quantity == 1
        assert result.is_a3 is True

    def test_valid_settings_unchanged(self):
        """Valid settings come back as-is."""
        settings = DocumentSettings(quantity=4, is_a3=False)

        assert normalize_settings(settings) is settings

    def test_idempotent(self):
        """Normalizing twice equals normalizing once."""
        once = normalize_settings(DocumentSettings(quantity=-3))

        assert normalize_settings(once) == once

    def test_normalized_property(self):
        """The property is a shortcut for normalize_settings()."""
        assert DocumentSettings(quantity=0).normalized == DocumentSettings(quantity=1)

    def test_default_settings(self):
        """Defaults are one copy, not A3."""
        assert DEFAULT_SETTINGS.quantity == 1
        assert DEFAULT_SETTINGS.is_a3 is False


# Tests for DocumentSettings serialization

class TestDocumentSettingsRecord:
    """Persisted record shape."""

    def test_to_dict(self):
        assert DocumentSettings(quantity=3, is_a3=True).to_dict() == {"quantity": 3, "isA3": True}

    def test_from_dict(self):
        settings = DocumentSettings.from_dict({"quantity": 2, "isA3": True})

        assert settings == DocumentSettings(quantity=2, is_a3=True)

    def test_from_dict_normalizes_quantity(self):
        """A legacy record with quantity 0 heals on read."""
        assert DocumentSettings.from_dict({"quantity": 0, "isA3": False}).quantity == 1

    def test_from_dict_missing_fields(self):
        assert DocumentSettings.from_dict({}) == DEFAULT_SETTINGS

    @pytest.mark.parametrize("record", [
        None,
        "quantity=2",
        {"quantity": "2", "isA3": "yes"},
        {"quantity": True, "isA3": 1},
        {"quantity": 2.5},
    ])
    def test_from_dict_malformed_falls_back_to_defaults(self, record):
        """Mistyped fields are replaced by defaults instead of raising."""
        assert DocumentSettings.from_dict(record) == DEFAULT_SETTINGS


# Tests for JobDescriptor

class TestJobDescriptor:

    def test_to_dict(self):
        descriptor = JobDescriptor(identifier="file:///tmp/a.pdf", quantity=2, is_a3=True)

        assert descriptor.to_dict() == {
            "identifier": "file:///tmp/a.pdf",
            "quantity": 2,
            "isA3": True,
        }


# Tests for upload models

class TestUploadModels:
    """Progress, plan and status models."""

    def test_session_state_terminal(self):
        assert not SessionState.IDLE.is_terminal
        assert not SessionState.RUNNING.is_terminal
        assert SessionState.SUCCEEDED.is_terminal
        assert SessionState.FAILED.is_terminal
        assert SessionState.CANCELLED.is_terminal

    def test_progress_complete(self):
        assert UploadProgress(3, 3, {"a": 3}).is_complete
        assert not UploadProgress(2, 3, {"a": 2}).is_complete
        assert not UploadProgress(0, 0).is_complete

    def test_plan_initial_progress(self):
        unit = UploadUnit(group_id="a", file_location=Path("/tmp/a.pdf"))
        plan = UploadPlan(units=(unit, unit), total_count=2, completed_per_group={"a": 0})

        progress = plan.initial_progress()

        assert progress == UploadProgress(0, 2, {"a": 0})
        # Snapshot must not alias the plan's dict
        assert progress.completed_per_group is not plan.completed_per_group

    def test_status_to_dict(self):
        status = UploadStatus(
            session_id="abc",
            state=SessionState.FAILED,
            progress=UploadProgress(1, 2, {"a": 1}),
            error_message="A network error occurred.",
        )

        data = status.to_dict()

        assert data["state"] == "failed"
        assert data["complete"] is True
        assert data["error_message"] == "A network error occurred."
        assert data["progress"] == {
            "successCount": 1,
            "totalCount": 2,
            "completedPerGroup": {"a": 1},
        }
        assert data["finished_at"] is None
