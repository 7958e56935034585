"""Property-based tests for webhook signature verification.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

import hashlib
import hmac
import string

from hypothesis import given, settings, strategies as st, assume

from hookbot.webhook.signature import (
    SIGNATURE_PREFIX,
    compute_signature,
    verify_signature,
)


# No NUL: HMAC zero-pads short keys, so "k" and "k\x00" sign identically
secrets = st.text(
    alphabet=string.ascii_letters + string.digits + string.punctuation + " ",
    min_size=1,
    max_size=64,
)
bodies = st.binary(max_size=2048)


class TestSignatureAcceptance:
    """A signature computed with the shared secret always verifies."""

    @given(body=bodies, secret=secrets)
    @settings(max_examples=100)
    def test_computed_signature_verifies(self, body: bytes, secret: str):
        assert verify_signature(body, compute_signature(body, secret), secret)

    @given(body=bodies, secret=secrets)
    @settings(max_examples=100)
    def test_matches_reference_hmac(self, body: bytes, secret: str):
        expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
        assert compute_signature(body, secret) == f"sha256={expected}"

    def test_known_vector(self):
        # Example from GitHub's webhook validation documentation
        body = b"Hello, World!"
        header = (
            "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )
        assert verify_signature(body, header, "It's a Secret to Everybody")

    def test_str_body_is_encoded_as_utf8(self):
        body = '{"comment": "héllo"}'
        header = compute_signature(body.encode("utf-8"), "s3cret")
        assert verify_signature(body, header, "s3cret")


class TestSignatureRejection:
    """Anything other than the exact signature is rejected without raising."""

    @given(body=bodies, secret=secrets, data=st.data())
    @settings(max_examples=100)
    def test_flipped_body_byte_fails(self, body: bytes, secret: str, data):
        assume(len(body) > 0)
        index = data.draw(st.integers(min_value=0, max_value=len(body) - 1))
        tampered = bytearray(body)
        tampered[index] ^= 0x01
        header = compute_signature(body, secret)
        assert not verify_signature(bytes(tampered), header, secret)

    @given(body=bodies, secret=secrets, data=st.data())
    @settings(max_examples=100)
    def test_flipped_header_byte_fails(self, body: bytes, secret: str, data):
        header = compute_signature(body, secret).encode("ascii")
        index = data.draw(st.integers(min_value=0, max_value=len(header) - 1))
        mask = data.draw(st.integers(min_value=1, max_value=0xFF))
        tampered = bytearray(header)
        tampered[index] ^= mask
        assert verify_signature(body, tampered.decode("latin-1"), secret) is False

    @given(body=bodies, secret=secrets, other=secrets)
    @settings(max_examples=100)
    def test_wrong_secret_fails(self, body: bytes, secret: str, other: str):
        assume(secret != other)
        header = compute_signature(body, other)
        assert not verify_signature(body, header, secret)

    @given(body=bodies, secret=secrets, header=st.text(max_size=80))
    @settings(max_examples=100)
    def test_arbitrary_header_never_raises(self, body: bytes, secret: str, header: str):
        assume(header != compute_signature(body, secret))
        assert verify_signature(body, header, secret) is False

    @given(body=bodies, secret=secrets)
    @settings(max_examples=100)
    def test_missing_prefix_fails(self, body: bytes, secret: str):
        header = compute_signature(body, secret)[len(SIGNATURE_PREFIX):]
        assert not verify_signature(body, header, secret)

    def test_missing_header_fails(self):
        assert verify_signature(b"{}", None, "s3cret") is False
        assert verify_signature(b"{}", "", "s3cret") is False

    def test_non_string_header_fails(self):
        assert verify_signature(b"{}", 12345, "s3cret") is False

    def test_empty_secret_fails(self):
        header = compute_signature(b"{}", "")
        assert verify_signature(b"{}", header, "") is False

    def test_sha1_header_fails(self):
        digest = hmac.new(b"s3cret", b"{}", hashlib.sha1).hexdigest()
        assert verify_signature(b"{}", f"sha1={digest}", "s3cret") is False

    def test_uppercase_hex_fails(self):
        header = compute_signature(b"{}", "s3cret")
        upper = SIGNATURE_PREFIX + header[len(SIGNATURE_PREFIX):].upper()
        assert not verify_signature(b"{}", upper, "s3cret")
