"""Tests for the exception hierarchy and its HTTP mapping."""
import pytest

from vaultnote.exceptions import (BadRequestError, ConflictError, ErrorCode,
                                  ForbiddenError, InternalError, LinkError,
                                  MailDeliveryError, NoteNotFoundError,
                                  StorageError, UnauthorizedError,
                                  UserNotFoundError, VaultNotFoundError,
                                  VaultNoteError)


class TestHttpStatus:
    """Each error class maps to one HTTP status."""

    @pytest.mark.parametrize("error, status", [
        (BadRequestError("bad"), 400),
        (UnauthorizedError(), 401),
        (ForbiddenError(), 403),
        (NoteNotFoundError(1), 404),
        (VaultNotFoundError(1), 404),
        (UserNotFoundError(), 404),
        (ConflictError("dup", code=ErrorCode.VAULT_ALREADY_EXISTS), 409),
        (StorageError("failed"), 500),
        (MailDeliveryError(), 500),
    ])
    def test_status(self, error, status):
        assert error.http_status == status

    def test_link_error_status_depends_on_code(self):
        assert LinkError("dup", code=ErrorCode.LINK_ALREADY_EXISTS).http_status == 409
        assert LinkError("gone", code=ErrorCode.LINK_NOT_FOUND).http_status == 404
        assert LinkError("bad").http_status == 400

    def test_internal_errors_share_a_base(self):
        assert isinstance(StorageError("x"), InternalError)
        assert isinstance(MailDeliveryError(), InternalError)
        assert isinstance(InternalError("x"), VaultNoteError)


class TestSerialization:
    """Tests for to_dict and string rendering."""

    def test_to_dict(self):
        error = BadRequestError("title required", field="title", code=ErrorCode.NOTE_TITLE_REQUIRED)
        assert error.to_dict() == {
            "error": "title required",
            "code": "NOTE_TITLE_REQUIRED",
            "details": {"field": "title"},
        }

    def test_details_can_be_suppressed(self):
        error = StorageError("failed", operation="create note", original_error=RuntimeError("disk"))
        assert error.to_dict(include_details=False) == {
            "error": "failed",
            "code": "STORAGE_READ_FAILED",
        }

    def test_empty_details_omitted(self):
        assert "details" not in UnauthorizedError().to_dict()

    def test_str_includes_code_and_details(self):
        error = NoteNotFoundError(42)
        assert str(error) == "[NOTE_NOT_FOUND] note not found (note_id=42)"

    def test_original_error_is_truncated(self):
        error = MailDeliveryError(original_error=OSError("x" * 500))
        assert len(error.details["original_error"]) == 200

    def test_link_error_records_endpoints(self):
        error = LinkError("dup", from_note_id=1, to_note_id=2, code=ErrorCode.LINK_ALREADY_EXISTS)
        assert error.details == {"from_note_id": 1, "to_note_id": 2}
