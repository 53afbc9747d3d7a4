"""Tests for signed identifier tokens and UUIDv7 helpers."""

from __future__ import annotations

import string
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from authit.errors import (
    InvalidEncoding,
    InvalidFormat,
    InvalidIdentifier,
    InvalidToken,
    SignatureMismatch,
)
from authit.ids import new_uuid7, uuid7_timestamp
from authit.signing import TokenCodec, provision_codec, session_codec

B64URL = string.ascii_letters + string.digits + "-_"


def _flip(ch: str, alphabet: str) -> str:
    return alphabet[(alphabet.index(ch) + 1) % len(alphabet)]


@pytest.fixture
def codec():
    return TokenCodec("s3cret", "provision")


def test_sign_verify_roundtrip(codec):
    link_id = new_uuid7()
    token = codec.sign(link_id)
    body, sig = token.split(".")
    assert body == link_id.hex
    assert "=" not in sig
    assert codec.verify(token) == link_id


def test_signing_is_deterministic(codec):
    link_id = new_uuid7()
    assert codec.sign(link_id) == codec.sign(link_id)


def test_flipped_signature_char_fails_everywhere(codec):
    token = codec.sign(new_uuid7())
    body, sig = token.split(".")
    for i in range(len(sig)):
        tampered = sig[:i] + _flip(sig[i], B64URL) + sig[i + 1 :]
        with pytest.raises(InvalidToken):
            codec.verify(f"{body}.{tampered}")


def test_flipped_id_char_fails_everywhere(codec):
    token = codec.sign(new_uuid7())
    body, sig = token.split(".")
    for i in range(len(body)):
        tampered = body[:i] + _flip(body[i], "0123456789abcdef") + body[i + 1 :]
        with pytest.raises(SignatureMismatch):
            codec.verify(f"{tampered}.{sig}")


@pytest.mark.parametrize("token", ["", "abc", "a.b.c", "..", f"{uuid.uuid4().hex}."])
def test_wrong_part_count_or_empty_signature(codec, token):
    with pytest.raises(InvalidToken):
        codec.verify(token)


def test_extra_separator_is_invalid_format(codec):
    token = codec.sign(new_uuid7())
    with pytest.raises(InvalidFormat):
        codec.verify(token + ".extra")


def test_non_base64_signature_is_invalid_encoding(codec):
    body = new_uuid7().hex
    with pytest.raises(InvalidEncoding):
        codec.verify(f"{body}.not*base64!")


def test_padded_signature_is_rejected(codec):
    token = codec.sign(new_uuid7())
    with pytest.raises(InvalidEncoding):
        codec.verify(token + "=")


def test_valid_signature_over_bad_identifier(codec):
    raw = TokenCodec("s3cret", "provision", encode=lambda value: value)
    token = raw.sign("definitely-not-a-uuid")
    with pytest.raises(InvalidIdentifier):
        codec.verify(token)


def test_non_canonical_identifier_is_rejected(codec):
    link_id = new_uuid7()
    raw = TokenCodec("s3cret", "provision", encode=lambda value: value)
    token = raw.sign(str(link_id))  # hyphenated form
    with pytest.raises(InvalidIdentifier):
        codec.verify(token)


def test_other_secret_cannot_verify():
    link_id = new_uuid7()
    token = TokenCodec("one", "provision").sign(link_id)
    with pytest.raises(SignatureMismatch):
        TokenCodec("two", "provision").verify(token)


def test_purposes_do_not_cross_verify():
    link_id = new_uuid7()
    token = provision_codec().sign(link_id)
    assert provision_codec().verify(token) == link_id
    with pytest.raises(SignatureMismatch):
        session_codec().verify(token)


def test_missing_secret_refuses_to_sign():
    with pytest.raises(RuntimeError):
        TokenCodec("", "session")


def test_uuid7_is_version_7_and_time_ordered():
    ids = [new_uuid7() for _ in range(50)]
    assert all(value.version == 7 for value in ids)
    stamps = [uuid7_timestamp(value) for value in ids]
    assert stamps == sorted(stamps)


def test_uuid7_timestamp_is_close_to_now():
    before = datetime.now(timezone.utc) - timedelta(seconds=1)
    stamp = uuid7_timestamp(new_uuid7())
    after = datetime.now(timezone.utc) + timedelta(seconds=1)
    assert before <= stamp <= after
    assert stamp.tzinfo is not None


def test_uuid7_timestamp_rejects_other_versions():
    with pytest.raises(ValueError):
        uuid7_timestamp(uuid.uuid4())
