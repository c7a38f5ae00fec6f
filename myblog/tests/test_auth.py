import unittest
from unittest.mock import MagicMock, patch

from firebase_admin import auth as firebase_auth

from myblog.auth import (
    FirebaseIdentityVerifier,
    Principal,
    StaticTokenVerifier,
    parse_bearer,
)
from myblog.errors import ServiceUnavailable, Unauthenticated


class ParseBearerTests(unittest.TestCase):
    def test_valid_header(self):
        self.assertEqual(parse_bearer("Bearer abc"), "abc")

    def test_missing_or_wrong_scheme(self):
        for header in (None, "", "Basic abc", "bearer abc"):
            with self.assertRaises(Unauthenticated) as ctx:
                parse_bearer(header)
            self.assertEqual(
                ctx.exception.message, "No valid authorization header provided"
            )

    def test_empty_token(self):
        with self.assertRaises(Unauthenticated) as ctx:
            parse_bearer("Bearer   ")
        self.assertEqual(ctx.exception.message, "No ID token provided")


class StaticTokenVerifierTests(unittest.TestCase):
    def test_lookup(self):
        verifier = StaticTokenVerifier.from_uids({"t1": "u1"})
        self.assertEqual(verifier.verify("t1"), Principal(id="u1"))
        with self.assertRaises(Unauthenticated):
            verifier.verify("t2")


@patch("myblog.auth.firebase_auth.verify_id_token")
class FirebaseIdentityVerifierTests(unittest.TestCase):
    def setUp(self):
        self.app = MagicMock()
        self.verifier = FirebaseIdentityVerifier(self.app)

    def test_decoded_claims_become_principal(self, verify):
        verify.return_value = {
            "uid": "u1",
            "email": "u1@example.com",
            "email_verified": True,
        }
        principal = self.verifier.verify("token")
        self.assertEqual(
            principal, Principal(id="u1", email="u1@example.com", email_verified=True)
        )
        verify.assert_called_once_with("token", app=self.app, check_revoked=False)

    def test_expired_token(self, verify):
        verify.side_effect = firebase_auth.ExpiredIdTokenError("expired", cause=None)
        with self.assertRaises(Unauthenticated) as ctx:
            self.verifier.verify("token")
        self.assertEqual(ctx.exception.message, "ID token expired")

    def test_invalid_token(self, verify):
        verify.side_effect = firebase_auth.InvalidIdTokenError("bad")
        with self.assertRaises(Unauthenticated) as ctx:
            self.verifier.verify("token")
        self.assertEqual(ctx.exception.message, "Invalid ID token")

    def test_malformed_token(self, verify):
        verify.side_effect = ValueError("not a jwt")
        with self.assertRaises(Unauthenticated):
            self.verifier.verify("token")

    def test_certificate_fetch_failure(self, verify):
        verify.side_effect = firebase_auth.CertificateFetchError("down", cause=None)
        with self.assertRaises(ServiceUnavailable):
            self.verifier.verify("token")


if __name__ == "__main__":
    unittest.main()
