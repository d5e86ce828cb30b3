"""
Tests for the user event and create request DTOs.
"""
import json
import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from user_service.schemas import CreateUserRequest, OperationType, User, UserEvent, operation_to_enum


def make_user(**overrides) -> User:
    fields = {
        "id": "u1",
        "first_name": "Ann",
        "last_name": "Lee",
        "email": "ann@example.com",
        "country": "IT",
        "nickname": "annie",
        "created_at": datetime(2026, 1, 22, 10, 0, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2026, 1, 22, 10, 0, 0, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return User(**fields)


class TestOperationToEnum:
    """Tests for operation tag classification."""

    @pytest.mark.parametrize("tag, expected", [
        ("insert", OperationType.CREATE),
        ("update", OperationType.UPDATE),
        ("delete", OperationType.DELETE),
        ("replace", OperationType.UNSPECIFIED),
        ("drop", OperationType.UNSPECIFIED),
        ("INSERT", OperationType.UNSPECIFIED),
        ("", OperationType.UNSPECIFIED),
        (None, OperationType.UNSPECIFIED),
        (42, OperationType.UNSPECIFIED),
    ])
    def test_mapping(self, tag, expected):
        """Known tags map to their type, everything else is UNSPECIFIED."""
        assert operation_to_enum(tag) is expected

    def test_ordinals(self):
        assert [op.number for op in OperationType] == [0, 1, 2, 3]
        assert OperationType.DELETE.number == 3


class TestUserEvent:
    """Tests for UserEvent."""

    def test_fresh_id_per_event(self):
        """Each event gets its own generated id."""
        first = UserEvent(user_id="u1", operation_type=OperationType.CREATE)
        second = UserEvent(user_id="u1", operation_type=OperationType.CREATE)
        assert first.id
        assert first.id != second.id

    def test_defaults(self):
        """Snapshots default to None and type to UNSPECIFIED."""
        event = UserEvent(user_id="u1")
        assert event.before_change is None
        assert event.after_change is None
        assert event.operation_type is OperationType.UNSPECIFIED

    def test_immutable(self):
        """Events cannot be modified after construction."""
        event = UserEvent(user_id="u1")
        with pytest.raises(ValidationError):
            event.user_id = "u2"

    def test_wire_format(self):
        """Events serialize to camelCase JSON with the operation type by name."""
        event = UserEvent(
            user_id="u1",
            before_change=make_user(),
            after_change=make_user(first_name="Anna"),
            operation_type=OperationType.UPDATE,
        )

        message = json.loads(event.to_message())

        assert message["id"] == event.id
        assert message["userId"] == "u1"
        assert message["operationType"] == "OPERATION_UPDATE"
        assert message["beforeChange"]["firstName"] == "Ann"
        assert message["afterChange"]["firstName"] == "Anna"
        assert message["afterChange"]["createdAt"].startswith("2026-01-22T10:00:00")
        assert "hashedPassword" not in message["afterChange"]

    def test_wire_format_null_snapshot(self):
        """A missing snapshot is serialized as null."""
        event = UserEvent(user_id="u1", before_change=make_user(), operation_type=OperationType.DELETE)

        message = json.loads(event.to_message())

        assert message["afterChange"] is None
        assert message["beforeChange"]["id"] == "u1"


class TestCreateUserRequest:
    """Password validation on create requests."""

    def test_blank_password_rejected(self):
        with pytest.raises(ValidationError, match="blank"):
            CreateUserRequest(
                first_name="Ann", last_name="Lee", email="ann@example.com",
                password=" " * 8, country="IT",
            )

    def test_password_kept_as_sent(self):
        request = CreateUserRequest(
            first_name="Ann", last_name="Lee", email="ann@example.com",
            password="  secret12  ", country="IT",
        )
        assert request.password == "  secret12  "
