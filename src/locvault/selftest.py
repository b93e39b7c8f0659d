"""Self-test for the location encryption engine.

Runs a fixed set of checks against one shared secret and reports which
passed. Meant for a device (or a developer) to confirm that this build
derives keys and reads envelopes the way every other build of the family
does:

    python -m locvault.selftest --secret ABC123
"""

from __future__ import annotations

import argparse
import base64
import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from locvault.core.exceptions import AuthenticationFailedError, LocVaultError
from locvault.core.logging_config import configure_logging
from locvault.core.models import LocationPayload
from locvault.security.compat import CompatibilityResolver, is_encrypted
from locvault.security.encryption import LocationEncryption
from locvault.security.envelope import ACTIVE_VERSION, SUITES, get_suite
from locvault.security.kdf import kdf_params_to_dict
from locvault.security.keycache import KeyCache

logger = logging.getLogger(__name__)

SAMPLE = LocationPayload(
    latitude=37.5665,
    longitude=126.9780,
    timestamp="2025-01-01T09:00:00+00:00",
    address="서울특별시 중구 명동",
)


@dataclass
class CheckResult:
    name: str
    passed: bool
    detail: str = ""


@dataclass
class SelfTestReport:
    version: str
    results: List[CheckResult] = field(default_factory=list)
    kdf: Dict[str, Any] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return bool(self.results) and all(r.passed for r in self.results)

    @property
    def failures(self) -> List[CheckResult]:
        return [r for r in self.results if not r.passed]

    def render(self) -> str:
        lines = [f"LocVault self-test ({self.version})"]
        if self.kdf:
            lines.append("  kdf: " + ", ".join(f"{k}={v}" for k, v in self.kdf.items()))
        for r in self.results:
            mark = "PASS" if r.passed else "FAIL"
            lines.append(f"  [{mark}] {r.name}" + (f": {r.detail}" if r.detail else ""))
        lines.append(f"{len(self.results) - len(self.failures)}/{len(self.results)} checks passed")
        return "\n".join(lines)


class _CheckFailed(Exception):
    pass


def _expect(condition: bool, detail: str) -> None:
    if not condition:
        raise _CheckFailed(detail)


def _flip_last_byte(envelope: str) -> str:
    tag, _, body = envelope.partition(":")
    raw = bytearray(base64.b64decode(body))
    raw[-1] ^= 0x01
    return f"{tag}:{base64.b64encode(bytes(raw)).decode('ascii')}"


def run_self_test(secret: str, version: str = ACTIVE_VERSION) -> SelfTestReport:
    """
    Run every check with ``secret`` and envelopes of ``version``.

    Uses private KeyCache instances so the process-wide cache is untouched.
    InvalidSecretError is raised rather than reported: nothing can pass
    without a usable secret.
    """
    suite = get_suite(version)
    engine = LocationEncryption(cache=KeyCache(), version=version)
    resolver = CompatibilityResolver(engine)
    report = SelfTestReport(version=version, kdf=kdf_params_to_dict(suite.kdf_name))

    # fail fast on an unusable secret
    engine.cache.get_or_derive(secret, suite.kdf)
    envelope = engine.encrypt(secret, SAMPLE)

    def round_trip():
        _expect(engine.decrypt(secret, envelope) == SAMPLE, "decrypted payload differs from the encrypted one")

    def envelope_prefix():
        _expect(envelope.startswith(suite.prefix), f"envelope does not start with {suite.prefix!r}")

    def legacy_pass_through():
        legacy = SAMPLE.to_dict()
        _expect(resolver.resolve(legacy, secret) is legacy, "legacy object was not returned unchanged")
        _expect(resolver.resolve(None, secret) is None, "absent value did not resolve to None")

    def encryption_detection():
        _expect(is_encrypted(envelope), "envelope not detected as encrypted")
        _expect(not is_encrypted(SAMPLE.to_dict()), "plain object detected as encrypted")

    def validation():
        _expect(engine.validate(secret, envelope), "valid envelope failed validation")

    def wrong_secret():
        try:
            engine.decrypt(secret + "-wrong", envelope)
        except AuthenticationFailedError:
            return
        raise _CheckFailed("envelope decrypted under a different secret")

    def tamper():
        try:
            engine.decrypt(secret, _flip_last_byte(envelope))
        except AuthenticationFailedError:
            return
        raise _CheckFailed("tampered envelope was accepted")

    def coordinates():
        coords_envelope = engine.encrypt_coordinates(secret, SAMPLE.latitude, SAMPLE.longitude)
        _expect(
            engine.decrypt_coordinates(secret, coords_envelope) == SAMPLE.coordinates(),
            "coordinates changed in transit",
        )

    def cross_device():
        # a second device: its own cache, its own engine, same secret
        other = LocationEncryption(cache=KeyCache(), version=version)
        _expect(other.decrypt(secret, envelope) == SAMPLE, "second device could not read the envelope")

    def determinism():
        _expect(suite.kdf(secret) == suite.kdf(secret), "key derivation is not deterministic")

    checks: List[tuple[str, Callable[[], None]]] = [
        ("round trip", round_trip),
        ("envelope prefix", envelope_prefix),
        ("legacy pass-through", legacy_pass_through),
        ("encryption detection", encryption_detection),
        ("validation", validation),
        ("wrong secret rejected", wrong_secret),
        ("tampering rejected", tamper),
        ("coordinate round trip", coordinates),
        ("cross-device agreement", cross_device),
        ("key determinism", determinism),
    ]

    for name, check in checks:
        try:
            check()
        except _CheckFailed as e:
            report.results.append(CheckResult(name, False, str(e)))
        except LocVaultError as e:
            report.results.append(CheckResult(name, False, f"{type(e).__name__}: {e}"))
        else:
            report.results.append(CheckResult(name, True))
        logger.debug("self-test check %r done", name)

    return report


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Check that this build encrypts and decrypts family location data correctly."
    )
    parser.add_argument(
        "--secret",
        required=True,
        help="Family shared secret (connection code) to test with",
    )
    parser.add_argument(
        "--version",
        choices=sorted(SUITES),
        default=ACTIVE_VERSION,
        help=f"Envelope version to exercise (default: {ACTIVE_VERSION})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        report = run_self_test(args.secret, version=args.version)
    except LocVaultError as e:
        print(f"self-test aborted: {e}", file=sys.stderr)
        return 2

    print(report.render())
    return 0 if report.passed else 1


if __name__ == "__main__":  # pragma: no cover - CLI entry
    sys.exit(main())
