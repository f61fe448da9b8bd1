"""Tests for studio_deploy.smtp."""

from __future__ import annotations

import base64

from studio_deploy.smtp import SmtpCredential, derive_smtp_password, smtp_endpoint

SECRET = "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY"


class TestDeriveSmtpPassword:
    def test_known_vector_us_east_1(self):
        assert derive_smtp_password(SECRET, "us-east-1") == "BLBM/9hSUELfq8Gw+rU1YcBjkOxGbhT2XG763xVLGWL9"

    def test_known_vector_ap_southeast_2(self):
        assert derive_smtp_password(SECRET, "ap-southeast-2") == "BLNVIwl1Vk66qi8YP1q44PSaqUtaoyrS/0LT79VaGBfa"

    def test_shape(self):
        password = derive_smtp_password("anything", "eu-west-1")
        raw = base64.b64decode(password)
        assert len(password) == 44
        assert raw[0] == 0x04
        assert len(raw) == 33

    def test_deterministic(self):
        assert derive_smtp_password(SECRET, "us-east-1") == derive_smtp_password(SECRET, "us-east-1")


class TestSmtpCredential:
    def test_from_secret(self):
        credential = SmtpCredential.from_secret("AKIAEXAMPLE", SECRET, "us-east-1")
        assert credential.username == "AKIAEXAMPLE"
        assert credential.password == derive_smtp_password(SECRET, "us-east-1")
        assert credential.server == "email-smtp.us-east-1.amazonaws.com"
        assert credential.port == 587

    def test_repr_hides_password(self):
        credential = SmtpCredential.from_secret("AKIAEXAMPLE", SECRET, "us-east-1")
        assert credential.password not in repr(credential)
        assert "AKIAEXAMPLE" in repr(credential)

    def test_endpoint(self):
        assert smtp_endpoint("eu-west-1") == "email-smtp.eu-west-1.amazonaws.com"
