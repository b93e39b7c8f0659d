"""
Unit tests for the compatibility resolver.
"""

import base64
import json
import logging

import pytest

from locvault.core.exceptions import InvalidSecretError
from locvault.core.models import LocationPayload
from locvault.security import compat
from locvault.security.compat import CompatibilityResolver, is_encrypted
from locvault.security.encryption import LocationEncryption
from locvault.security.keycache import KeyCache


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def engine():
    return LocationEncryption(cache=KeyCache())


@pytest.fixture
def resolver(engine):
    return CompatibilityResolver(engine)


@pytest.fixture
def payload():
    return LocationPayload(
        latitude=37.5665,
        longitude=126.9780,
        timestamp="2025-03-01T12:00:00+00:00",
        address="서울특별시 중구 명동",
    )


# ==============================================================================
# Tests: Legacy and absent values
# ==============================================================================

def test_structured_passes_through_unchanged(resolver):
    legacy = {"latitude": 37.5, "longitude": 127.0, "battery": 80}
    result = resolver.resolve(legacy, "any-secret")
    assert result is legacy
    assert result == {"latitude": 37.5, "longitude": 127.0, "battery": 80}


def test_structured_needs_no_valid_secret(resolver):
    legacy = {"latitude": 1.0, "longitude": 2.0}
    assert resolver.resolve(legacy, "") is legacy


def test_absent(resolver):
    assert resolver.resolve(None, "ABC123") is None


def test_legacy_json_string(resolver):
    raw = json.dumps({"latitude": 37.5, "longitude": 127.0, "address": "명동"}, ensure_ascii=False)
    assert resolver.resolve(raw, "ABC123") == {"latitude": 37.5, "longitude": 127.0, "address": "명동"}


@pytest.mark.parametrize("raw", ["not json at all", "[1, 2]", "42", '"quoted"', "", "v9:AAAA"])
def test_unusable_text(resolver, raw):
    assert resolver.resolve(raw, "ABC123") is None


@pytest.mark.parametrize("raw", [42, 3.5, ["v1:AAAA"], object()])
def test_unsupported_types(resolver, raw):
    assert resolver.resolve(raw, "ABC123") is None


def test_bytes_are_read_as_text(resolver, engine, payload):
    env = engine.encrypt("ABC123", payload)
    assert resolver.resolve(env.encode("ascii"), "ABC123") == payload.to_dict()
    assert resolver.resolve(b"\xff\xfe", "ABC123") is None


# ==============================================================================
# Tests: Envelopes
# ==============================================================================

def test_envelope_decrypted(resolver, engine, payload):
    env = engine.encrypt("ABC123", payload)
    assert resolver.resolve(env, "ABC123") == payload.to_dict()


def test_envelope_wrong_secret_is_none(resolver, engine, payload):
    env = engine.encrypt("ABC123", payload)
    assert resolver.resolve(env, "WRONG1") is None


def test_tampered_envelope_is_none(resolver, engine, payload):
    env = engine.encrypt("ABC123", payload)
    raw = bytearray(base64.b64decode(env[3:]))
    raw[20] ^= 0xFF
    assert resolver.resolve("v1:" + base64.b64encode(bytes(raw)).decode(), "ABC123") is None


@pytest.mark.parametrize("raw", ["v1:", "v1:AAAA", "v1:***not-base64***"])
def test_malformed_envelope_is_none(resolver, raw):
    assert resolver.resolve(raw, "ABC123") is None


def test_invalid_secret_propagates(resolver, engine, payload):
    env = engine.encrypt("ABC123", payload)
    with pytest.raises(InvalidSecretError):
        resolver.resolve(env, "")


def test_failure_log_has_no_secret_or_coordinates(resolver, engine, payload, caplog):
    env = engine.encrypt("ABC123", payload)
    with caplog.at_level(logging.DEBUG, logger="locvault"):
        assert resolver.resolve(env, "WRONG1") is None
    assert caplog.records
    text = caplog.text
    assert "WRONG1" not in text
    assert "ABC123" not in text
    assert "37.5665" not in text
    assert env[3:] not in text


# ==============================================================================
# Tests: Streams and helpers
# ==============================================================================

def test_resolve_many_survives_bad_records(resolver, engine, payload):
    good = engine.encrypt("ABC123", payload)
    legacy = {"latitude": 1.0, "longitude": 2.0}
    results = list(resolver.resolve_many([good, "v1:garbage==", None, legacy, good], "ABC123"))
    assert results == [payload.to_dict(), None, None, legacy, payload.to_dict()]


def test_is_encrypted(engine, payload):
    env = engine.encrypt("ABC123", payload)
    assert is_encrypted(env)
    assert not is_encrypted(payload.to_dict())
    assert not is_encrypted(json.dumps(payload.to_dict()))
    assert not is_encrypted(None)


def test_module_level_resolve(payload):
    legacy = payload.to_dict()
    assert compat.resolve_location(legacy, "ABC123") is legacy
    assert compat.get_resolver() is compat.get_resolver()
