"""
Tests for session token resolution and the trigger secret check.
"""
import pytest

from betterdoit.auth import SignedTokenResolver, verify_cron_secret
from betterdoit.exceptions import AuthorizationError


class TestSignedTokenResolver:
    """Tests for SignedTokenResolver."""

    def test_round_trip(self):
        resolver = SignedTokenResolver("secret")
        assert resolver.resolve(resolver.sign("user-1")) == "user-1"

    def test_user_ids_may_contain_dots(self):
        resolver = SignedTokenResolver("secret")
        assert resolver.resolve(resolver.sign("first.last")) == "first.last"

    @pytest.mark.parametrize("token", ["", "user-1", "user-1.", ".abc", "user-1.deadbeef"])
    def test_malformed_or_forged_tokens(self, token):
        assert SignedTokenResolver("secret").resolve(token) is None

    def test_token_from_another_secret_is_rejected(self):
        token = SignedTokenResolver("other").sign("user-1")
        assert SignedTokenResolver("secret").resolve(token) is None

    def test_empty_secret_is_refused(self):
        with pytest.raises(ValueError):
            SignedTokenResolver("")


class TestVerifyCronSecret:
    """Tests for verify_cron_secret."""

    def test_matching_secret(self):
        verify_cron_secret("s3cret", "s3cret")

    @pytest.mark.parametrize("provided", [None, "", "wrong"])
    def test_wrong_or_missing_secret(self, provided):
        with pytest.raises(AuthorizationError):
            verify_cron_secret(provided, "s3cret")

    def test_unconfigured_secret_rejects_everything(self):
        with pytest.raises(AuthorizationError):
            verify_cron_secret("anything", None)
        with pytest.raises(AuthorizationError):
            verify_cron_secret("", "")
