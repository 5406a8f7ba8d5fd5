"""Tests for username/session-token credentials and the authentication manager."""

import dataclasses
from datetime import timedelta

import pytest

from tcu_api.audit import MemoryAuditSink
from tcu_api.config import ClientConfig
from tcu_api.credential import AuthenticationManager, UsernameToken
from tcu_api.exceptions import AuthenticationError


class TestUsernameTokenLimits:
    """Field length limits enforced on construction."""

    @pytest.mark.parametrize(
        "username,token",
        [
            ("a", "t" * 10),
            ("u" * 50, "t" * 255),
            ("jdoe", "abcdefghij0123"),
        ],
    )
    def test_accepts_values_within_limits(self, username, token):
        credential = UsernameToken.create(username, token)
        assert credential.username == username
        assert credential.session_token == token

    def test_empty_username_rejected(self):
        with pytest.raises(AuthenticationError, match="Username cannot be empty"):
            UsernameToken.create("", "abcdefghij0123")

    def test_nine_character_token_rejected(self):
        with pytest.raises(AuthenticationError, match="at least 10"):
            UsernameToken.create("jdoe", "123456789")

    def test_long_username_rejected(self):
        with pytest.raises(AuthenticationError):
            UsernameToken.create("u" * 51, "abcdefghij0123")

    def test_long_token_rejected(self):
        with pytest.raises(AuthenticationError):
            UsernameToken.create("jdoe", "t" * 256)

    def test_empty_token_rejected(self):
        with pytest.raises(AuthenticationError, match="Session token cannot be empty"):
            UsernameToken.create("jdoe", "")

    def test_error_code_is_401(self):
        with pytest.raises(AuthenticationError) as exc_info:
            UsernameToken.create("", "abcdefghij0123")
        assert exc_info.value.code == 401


class TestUsernameTokenBehaviour:
    def test_is_immutable(self, credential):
        with pytest.raises(dataclasses.FrozenInstanceError):
            credential.username = "other"

    def test_not_expired_within_ttl(self, credential, fixed_now):
        now = fixed_now + timedelta(hours=23)
        assert credential.is_expired(ttl_hours=24, now=now) is False

    def test_expired_after_ttl(self, credential, fixed_now):
        now = fixed_now + timedelta(hours=25)
        assert credential.is_expired(ttl_hours=24, now=now) is True

    def test_expiry_uses_supplied_ttl(self, credential, fixed_now):
        now = fixed_now + timedelta(hours=2)
        assert credential.is_expired(ttl_hours=1, now=now) is True
        assert credential.is_expired(ttl_hours=3, now=now) is False

    def test_auth_fragment(self, credential):
        fragment = credential.to_auth_fragment()
        assert fragment.to_python() == {
            "Username": "jdoe",
            "SessionToken": "abcdefghij0123",
        }
        assert list(fragment.keys()) == ["Username", "SessionToken"]

    def test_str_masks_session_token(self, credential):
        rendered = str(credential)
        assert "abcdefghij..." in rendered
        assert "abcdefghij0123" not in rendered
        assert repr(credential) == rendered

    def test_fingerprint_is_stable(self, credential):
        other = UsernameToken.create("jdoe", "abcdefghij0123")
        assert credential.fingerprint() == other.fingerprint()
        assert len(credential.fingerprint()) == 32

    def test_from_dict(self):
        token = UsernameToken.from_dict(
            {"username": "jdoe", "session_token": "abcdefghij0123"}
        )
        assert token.username == "jdoe"

    def test_from_dict_requires_both_keys(self):
        with pytest.raises(AuthenticationError, match="required"):
            UsernameToken.from_dict({"username": "jdoe"})

    def test_naive_created_at_is_treated_as_utc(self, fixed_now):
        naive = fixed_now.replace(tzinfo=None)
        token = UsernameToken.create("jdoe", "abcdefghij0123", created_at=naive)

        assert token.created_at == fixed_now
        assert token.is_expired(ttl_hours=24, now=fixed_now + timedelta(hours=1)) is False
        assert token.is_expired(ttl_hours=24, now=fixed_now + timedelta(hours=25)) is True
        assert token.to_dict()["created_at"] == "2025-01-09 10:00:00"

    def test_to_dict(self, credential):
        data = credential.to_dict()
        assert data["username"] == "jdoe"
        assert data["created_at"] == "2025-01-09 10:00:00"
        assert data["is_valid"] is True


def make_manager(sink=None, **overrides):
    values = {"username": "jdoe", "security_token": "abcdefghij0123"}
    values.update(overrides)
    return AuthenticationManager(ClientConfig(**values), sink)


class TestAuthenticationManager:
    def test_create_token_from_config(self):
        token = make_manager().create_token_from_config()
        assert token.username == "jdoe"

    def test_create_token_rejects_username_alphabet(self):
        with pytest.raises(
            AuthenticationError, match="Failed to create authentication token"
        ):
            make_manager().create_token("j doe", "abcdefghij0123")

    def test_create_token_wraps_length_errors(self):
        with pytest.raises(AuthenticationError) as exc_info:
            make_manager().create_token("jdoe", "short")
        assert "Failed to create authentication token" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, AuthenticationError)

    def test_validate_token_accepts_fresh_token(self):
        manager = make_manager()
        assert manager.validate_token(manager.create_token_from_config()) is True

    def test_validate_token_handles_naive_timestamp(self, fixed_now):
        stale = UsernameToken.create(
            "jdoe", "abcdefghij0123", created_at=fixed_now.replace(tzinfo=None)
        )
        assert make_manager().validate_token(stale) is False

    def test_validate_token_rejects_expired_token(self, fixed_now):
        manager = make_manager(token_expiry_hours=1)
        stale = UsernameToken.create(
            "jdoe", "abcdefghij0123", created_at=fixed_now - timedelta(days=365)
        )
        assert manager.validate_token(stale) is False

    def test_refresh_without_credentials(self):
        manager = make_manager(username="", security_token="")
        with pytest.raises(
            AuthenticationError, match="Failed to refresh authentication token"
        ):
            manager.refresh_token()

    def test_attempts_are_audited(self):
        sink = MemoryAuditSink()
        manager = make_manager(sink)
        manager.refresh_token()
        with pytest.raises(AuthenticationError):
            manager.create_token("bad name", "abcdefghij0123")

        kinds = {entry.kind for entry in sink.entries}
        assert kinds == {"authentication"}
        outcomes = [(entry.endpoint, entry.success) for entry in sink.entries]
        assert ("create", True) in outcomes
        assert ("refresh", True) in outcomes
        assert ("create", False) in outcomes
        failed = [entry for entry in sink.entries if not entry.success]
        assert failed[0].error_message == "Username contains invalid characters"
