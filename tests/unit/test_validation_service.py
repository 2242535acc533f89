"""Unit tests for batch rename validation."""

from core.models import ImageRecord
from core.services.validation_service import (
    DUPLICATE_NAME,
    EMPTY_NAME,
    INVALID_EXTENSION,
    can_export,
    other_names_lowercased,
    validate_rename,
)


class TestValidateRename:
    """Tests for validate_rename."""

    def test_valid_name(self) -> None:
        assert validate_rename("A123456_001.jpg", ["a123456_002.jpg"]) is None

    def test_blank_name(self) -> None:
        assert validate_rename("   ", []) == EMPTY_NAME

    def test_wrong_extension(self) -> None:
        assert validate_rename("photo.txt", []) == INVALID_EXTENSION

    def test_duplicate_is_case_insensitive(self) -> None:
        assert validate_rename("A123456_001.JPG", ["a123456_001.jpg"]) == DUPLICATE_NAME

    def test_surrounding_whitespace_ignored(self) -> None:
        assert validate_rename("  A1_001.png  ", ["a1_001.png"]) == DUPLICATE_NAME


class TestBatchHelpers:
    """Tests for other_names_lowercased and can_export."""

    def test_other_names_excludes_index(self) -> None:
        records = [ImageRecord("/x/A.jpg"), ImageRecord("/x/B.JPG"), ImageRecord("/x/c.jpg")]
        assert other_names_lowercased(records, 1) == ["a.jpg", "c.jpg"]

    def test_can_export_needs_pending_rename(self) -> None:
        records = [ImageRecord("/x/a.jpg"), ImageRecord("/x/b.jpg")]
        assert not can_export(records)
        records[0].proposed_name = "A1_001.jpg"
        assert can_export(records)

    def test_can_export_blocked_by_error(self) -> None:
        records = [ImageRecord("/x/a.jpg", proposed_name="b.jpg")]
        records[0].rename_error = DUPLICATE_NAME
        assert not can_export(records)
