"""Unit tests for gatehouse.services.tokens: access token claims, verification, refresh tokens."""

import unittest
from datetime import timedelta

import jwt

from gatehouse.models import User
from gatehouse.services.tokens import REFRESH_TOKEN_BYTES, JwtSettings, TokenIssuer
from tests.support import TEST_SECRET, FrozenClock, make_jwt_settings


def _user(**kwargs: object) -> User:
    defaults = {
        "id": "7d9f0c1e-0000-4000-8000-000000000001",
        "username": "alice",
        "email": "alice@x.com",
        "is_active": True,
        "is_email_confirmed": False,
    }
    defaults.update(kwargs)
    return User(**defaults)


class TestJwtSettings(unittest.TestCase):
    """JwtSettings is immutable and refuses an empty secret."""

    def test_empty_secret_rejected(self) -> None:
        with self.assertRaises(ValueError):
            JwtSettings(secret="  ", issuer="i", audience="a")

    def test_secret_not_in_repr(self) -> None:
        self.assertNotIn(TEST_SECRET, repr(make_jwt_settings()))


class TestIssueAccessToken(unittest.TestCase):
    """issue_access_token embeds identity, roles, permissions and standard claims."""

    def setUp(self) -> None:
        self.clock = FrozenClock()
        self.issuer = TokenIssuer(make_jwt_settings(), clock=self.clock)

    def test_claims_content(self) -> None:
        token = self.issuer.issue_access_token(
            _user(), {"User", "Administrator"}, {"users.write", "users.read"}
        )
        payload = self.issuer.decode(token)
        self.assertEqual(payload["sub"], "7d9f0c1e-0000-4000-8000-000000000001")
        self.assertEqual(payload["username"], "alice")
        self.assertEqual(payload["email"], "alice@x.com")
        self.assertIs(payload["is_active"], True)
        self.assertIs(payload["is_email_confirmed"], False)
        self.assertEqual(payload["role"], ["Administrator", "User"])
        self.assertEqual(payload["permission"], ["users.read", "users.write"])
        self.assertEqual(payload["iss"], "gatehouse-test")
        self.assertEqual(payload["aud"], "gatehouse-test-clients")
        self.assertEqual(payload["iat"], int(self.clock.now.timestamp()))

    def test_signed_with_hmac(self) -> None:
        token = self.issuer.issue_access_token(_user(), [], [])
        self.assertEqual(jwt.get_unverified_header(token)["alg"], "HS256")

    def test_deterministic_for_same_inputs_and_clock(self) -> None:
        first = self.issuer.issue_access_token(_user(), ["b", "a"], ["y", "x"])
        second = self.issuer.issue_access_token(_user(), ["a", "b"], ["x", "y"])
        self.assertEqual(first, second)

    def test_decode_expiry_round_trip(self) -> None:
        token = self.issuer.issue_access_token(_user(), [], [])
        expiry = self.issuer.decode_expiry(token)
        expected = self.clock.now + timedelta(minutes=15)
        self.assertIsNotNone(expiry)
        self.assertEqual(expiry, expected)

    def test_decode_expiry_malformed_returns_none(self) -> None:
        self.assertIsNone(self.issuer.decode_expiry("not-a-jwt"))


class TestVerify(unittest.TestCase):
    """verify returns False, never raises, for anything that fails validation."""

    def setUp(self) -> None:
        self.clock = FrozenClock()
        self.issuer = TokenIssuer(make_jwt_settings(), clock=self.clock)
        self.token = self.issuer.issue_access_token(_user(), ["User"], ["users.read"])

    def test_valid_token(self) -> None:
        self.assertTrue(self.issuer.verify(self.token))

    def test_garbage(self) -> None:
        self.assertFalse(self.issuer.verify(""))
        self.assertFalse(self.issuer.verify("a.b.c"))
        self.assertFalse(self.issuer.verify("definitely not a token"))

    def test_wrong_secret(self) -> None:
        other = TokenIssuer(
            make_jwt_settings(secret="another-signing-secret-0123456789abcdef"), clock=self.clock
        )
        self.assertFalse(other.verify(self.token))

    def test_tampered_payload(self) -> None:
        header, _, signature = self.token.split(".")
        forged = jwt.encode(
            {"sub": "someone-else", "exp": 9999999999, "iat": 0},
            "guessed-secret-guessed-secret-0123",
            algorithm="HS256",
        ).split(".")[1]
        self.assertFalse(self.issuer.verify(f"{header}.{forged}.{signature}"))

    def test_wrong_issuer(self) -> None:
        other = TokenIssuer(make_jwt_settings(issuer="someone-else"), clock=self.clock)
        self.assertFalse(other.verify(self.token))

    def test_wrong_audience(self) -> None:
        other = TokenIssuer(make_jwt_settings(audience="other-clients"), clock=self.clock)
        self.assertFalse(other.verify(self.token))

    def test_expired_beyond_skew(self) -> None:
        self.clock.advance(minutes=15 + 5 + 1)
        self.assertFalse(self.issuer.verify(self.token))

    def test_expired_within_skew_still_valid(self) -> None:
        self.clock.advance(minutes=15 + 4)
        self.assertTrue(self.issuer.verify(self.token))

    def test_issued_in_future_rejected(self) -> None:
        self.clock.advance(minutes=-10)
        self.assertFalse(self.issuer.verify(self.token))

    def test_lifetime_check_can_be_disabled(self) -> None:
        lenient = TokenIssuer(make_jwt_settings(validate_lifetime=False), clock=self.clock)
        self.clock.advance(days=2)
        self.assertTrue(lenient.verify(self.token))

    def test_issuer_and_audience_checks_can_be_disabled(self) -> None:
        lenient = TokenIssuer(
            make_jwt_settings(
                issuer="x", audience="y", validate_issuer=False, validate_audience=False
            ),
            clock=self.clock,
        )
        self.assertTrue(lenient.verify(self.token))

    def test_decode_raises_pyjwt_error(self) -> None:
        with self.assertRaises(jwt.PyJWTError):
            self.issuer.decode("a.b.c")


class TestIssueRefreshToken(unittest.TestCase):
    """issue_refresh_token returns an unsaved, ownerless record with a random value."""

    def setUp(self) -> None:
        self.clock = FrozenClock()
        self.issuer = TokenIssuer(make_jwt_settings(refresh_token_days=7), clock=self.clock)

    def test_record_fields(self) -> None:
        record = self.issuer.issue_refresh_token("203.0.113.9")
        self.assertIsNone(record.user_id)
        self.assertFalse(record.is_revoked)
        self.assertEqual(record.created_by_ip, "203.0.113.9")
        self.assertEqual(record.created_at, self.clock.now)
        self.assertEqual(record.expires_at, self.clock.now + timedelta(days=7))
        self.assertTrue(record.is_active(self.clock.now))
        self.assertFalse(record.is_active(self.clock.now + timedelta(days=7)))

    def test_value_is_long_and_unique(self) -> None:
        values = {self.issuer.issue_refresh_token(None).token for _ in range(50)}
        self.assertEqual(len(values), 50)
        for value in values:
            # 64 random bytes, URL-safe base64 without padding
            self.assertEqual(len(value), 86)
            self.assertGreaterEqual(len(value) * 6 // 8, REFRESH_TOKEN_BYTES)

    def test_missing_ip_recorded_as_unknown(self) -> None:
        self.assertEqual(self.issuer.issue_refresh_token(None).created_by_ip, "unknown")
        self.assertEqual(self.issuer.issue_refresh_token("  ").created_by_ip, "unknown")


if __name__ == "__main__":
    unittest.main()
