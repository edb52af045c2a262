"""
Advisory tamper evidence for submissions.

A fingerprint is an HMAC of a few passive system facts keyed by a secret
the instructor compiles into the grading program. The dropbox recomputes it
with its own copy of the secret to flag submissions that did not come from
that program.

This is not authentication. Anyone holding the grading program can recover
the secret or replay a digest; treat a mismatch as a signal, not proof.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import platform
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ..errors import MalformedSubmission


def collect_system_info() -> Dict[str, str]:
    return {
        "platform": platform.system().lower() or "unknown",
        "machine": platform.machine() or "unknown",
        "python": platform.python_version(),
    }


def _digest(secret: str, system_info: Mapping[str, str]) -> str:
    message = json.dumps(dict(system_info), sort_keys=True, separators=(",", ":"))
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class Fingerprint:
    secret_digest: str
    system_info: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def generate(cls, secret: str, system_facts: Optional[Mapping[str, str]] = None) -> "Fingerprint":
        info = dict(system_facts) if system_facts is not None else collect_system_info()
        return cls(secret_digest=_digest(secret, info), system_info=info)

    @property
    def platform(self) -> str:
        return self.system_info.get("platform", "")

    def matches(self, secret: str) -> bool:
        return hmac.compare_digest(self.secret_digest, _digest(secret, self.system_info))

    def to_dict(self) -> Dict[str, Any]:
        return {"secret_digest": self.secret_digest, "system_info": dict(self.system_info)}

    @classmethod
    def from_dict(cls, raw: Any) -> "Fingerprint":
        if not isinstance(raw, dict):
            raise MalformedSubmission("'fingerprint' must be an object")
        digest = raw.get("secret_digest")
        info = raw.get("system_info", {})
        if not isinstance(digest, str):
            raise MalformedSubmission("'fingerprint.secret_digest' must be a string")
        if not isinstance(info, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in info.items()
        ):
            raise MalformedSubmission("'fingerprint.system_info' must map strings to strings")
        return cls(secret_digest=digest, system_info=info)
