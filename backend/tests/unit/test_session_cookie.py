"""Tests for the session cookie codec."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from pydantic import SecretStr
from starlette.responses import Response

from aidhub.core.config import Settings
from aidhub.core.errors import (
    InvalidSignatureError,
    MalformedSessionError,
    SessionExpiredError,
    UnauthenticatedError,
)
from aidhub.core.session_cookie import (
    SessionCookie,
    SessionCookieCodec,
    apply_session_cookie,
)
from tests.conftest import TEST_AUTH_SECRET, make_codec

_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def codec() -> SessionCookieCodec:
    return make_codec()


class TestEncode:
    """SessionCookieCodec.encode."""

    def test_round_trips_subject(self, codec):
        cookie = codec.encode(42, now=_NOW)
        assert codec.decode(cookie.value, now=_NOW) == 42

    def test_expires_ttl_after_now(self, codec):
        cookie = codec.encode(1, now=_NOW)
        assert cookie.expires == _NOW + timedelta(minutes=20)

    def test_expiry_is_under_thirty_minutes(self, codec):
        cookie = codec.encode(1, now=_NOW)
        assert cookie.expires - _NOW < timedelta(minutes=30)

    def test_cookie_attributes(self, codec):
        cookie = codec.encode(1, now=_NOW)
        assert cookie.name == "aidhub.session"
        assert cookie.path == "/"
        assert cookie.httponly is True

    def test_deterministic_for_same_inputs(self, codec):
        assert codec.encode(7, now=_NOW) == codec.encode(7, now=_NOW)

    def test_claims(self, codec):
        payload = jwt.decode(
            codec.encode(5, now=_NOW).value,
            TEST_AUTH_SECRET,
            algorithms=["HS256"],
            audience="aidhub",
            options={"verify_exp": False, "verify_iat": False},
        )
        assert payload["sub"] == "5"
        assert payload["iss"] == "aidhub"
        assert payload["exp"] - payload["iat"] == 20 * 60

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError, match="must not be empty"):
            make_codec(secret="")


class TestDecode:
    """SessionCookieCodec.decode failure modes."""

    def test_expired_cookie_rejected(self, codec):
        cookie = codec.encode(1, now=_NOW)
        with pytest.raises(SessionExpiredError):
            codec.decode(cookie.value, now=_NOW + timedelta(minutes=20))

    def test_valid_just_before_expiry(self, codec):
        cookie = codec.encode(1, now=_NOW)
        later = _NOW + timedelta(minutes=19, seconds=59)
        assert codec.decode(cookie.value, now=later) == 1

    def test_tampered_payload_rejected(self, codec):
        header, payload, signature = codec.encode(1, now=_NOW).value.split(".")
        forged = jwt.encode(
            {
                "sub": "2",
                "aud": "aidhub",
                "iss": "aidhub",
                "iat": _NOW,
                "exp": _NOW + timedelta(minutes=20),
            },
            "some-other-secret-that-is-long-enough-to-sign",
            algorithm="HS256",
        )
        forged_payload = forged.split(".")[1]
        with pytest.raises(InvalidSignatureError):
            codec.decode(f"{header}.{forged_payload}.{signature}", now=_NOW)

    def test_other_secret_rejected(self, codec):
        other = make_codec(secret="x" * 48)
        with pytest.raises(InvalidSignatureError):
            codec.decode(other.encode(1, now=_NOW).value, now=_NOW)

    @pytest.mark.parametrize("value", ["", "garbage", "a.b.c", "a.b"])
    def test_malformed_values_rejected(self, codec, value):
        with pytest.raises(MalformedSessionError):
            codec.decode(value, now=_NOW)

    def test_wrong_audience_is_malformed(self, codec):
        token = jwt.encode(
            {
                "sub": "1",
                "aud": "someone-else",
                "iss": "aidhub",
                "iat": _NOW,
                "exp": _NOW + timedelta(minutes=5),
            },
            TEST_AUTH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedSessionError):
            codec.decode(token, now=_NOW)

    def test_missing_claim_is_malformed(self, codec):
        token = jwt.encode(
            {"sub": "1", "aud": "aidhub", "iss": "aidhub", "iat": _NOW},
            TEST_AUTH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedSessionError):
            codec.decode(token, now=_NOW)

    def test_non_numeric_subject_is_malformed(self, codec):
        token = jwt.encode(
            {
                "sub": "alice",
                "aud": "aidhub",
                "iss": "aidhub",
                "iat": _NOW,
                "exp": _NOW + timedelta(minutes=5),
            },
            TEST_AUTH_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(MalformedSessionError):
            codec.decode(token, now=_NOW)

    def test_failures_share_one_public_error(self, codec):
        """Every decode failure is an UnauthenticatedError with the same code."""
        for exc_type in (
            MalformedSessionError,
            InvalidSignatureError,
            SessionExpiredError,
        ):
            exc = exc_type()
            assert isinstance(exc, UnauthenticatedError)
            assert exc.code == UnauthenticatedError().code
            assert exc.message == UnauthenticatedError().message


class TestExpired:
    """SessionCookieCodec.expired (sign-out)."""

    def test_expires_at_epoch(self, codec):
        cookie = codec.expired()
        assert cookie.expires == datetime(1970, 1, 1, tzinfo=UTC)
        assert cookie.value == ""
        assert cookie.name == codec.cookie_name


class TestFromSettings:
    """SessionCookieCodec.from_settings."""

    def test_uses_configured_secret_and_ttl(self):
        config = Settings(
            auth_secret=SecretStr(TEST_AUTH_SECRET), session_ttl_minutes=10
        )
        codec = SessionCookieCodec.from_settings(config)
        cookie = codec.encode(3, now=_NOW)
        assert cookie.expires == _NOW + timedelta(minutes=10)
        assert make_codec().decode(cookie.value, now=_NOW) == 3

    def test_development_without_secret_still_works(self):
        config = Settings(environment="development", auth_secret=SecretStr(""))
        codec = SessionCookieCodec.from_settings(config)
        cookie = codec.encode(9, now=_NOW)
        assert codec.decode(cookie.value, now=_NOW) == 9


class TestApplySessionCookie:
    """apply_session_cookie writes the Set-Cookie header."""

    def test_sets_http_only_root_path(self, codec):
        response = Response(status_code=204)
        apply_session_cookie(
            response,
            codec.encode(1, now=_NOW),
            Settings(auth_cookie_secure=True, auth_cookie_samesite="lax"),
        )
        header = response.headers["set-cookie"]
        assert header.startswith("aidhub.session=")
        assert "HttpOnly" in header
        assert "Path=/" in header
        assert "Secure" in header
        assert "SameSite=lax" in header
        assert "expires=Sun, 01 Mar 2026 12:20:00 GMT" in header

    def test_expired_cookie_header(self, codec):
        response = Response(status_code=204)
        apply_session_cookie(response, codec.expired(), Settings())
        assert "expires=Thu, 01 Jan 1970 00:00:00 GMT" in response.headers["set-cookie"]

    def test_domain_omitted_when_unset(self, codec):
        response = Response(status_code=204)
        cookie = SessionCookie(name="n", value="v", expires=_NOW)
        apply_session_cookie(response, cookie, Settings(auth_cookie_domain=""))
        assert "Domain" not in response.headers["set-cookie"]
