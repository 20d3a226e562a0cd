"""
Threshold policy for the profile audit classifier.

The classifier reads every age/length cut-off from an ``AuditPolicy`` rather
than hard-coding numbers inline. Historical audit exports were produced with
the defaults below, so changing a value is a product decision, not a tuning
knob.

Operators can override individual thresholds by pointing the
``AUDIT_POLICY_PATH`` environment variable at a JSON or YAML object whose keys
match the ``AuditPolicy`` field names. Unknown keys are rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Mapping, MutableMapping

import yaml


@dataclass(frozen=True)
class AuditPolicy:
    """
    Named thresholds used by the classification rules.

    Attributes:
        junk_strong_age_days: Account age (days) above which an inactive,
            studio-less pending/expired account is a strong JUNK signal.
        junk_weak_age_days: Lower age bound for the weaker JUNK signal.
        stale_profile_days: Days without a profile update before the profile
            is considered stale.
        min_username_length: Usernames shorter than this are flagged as
            suspicious.
        min_display_name_length: Display names shorter than this are flagged as
            suspicious.
    """

    junk_strong_age_days: int = 30
    junk_weak_age_days: int = 7
    stale_profile_days: int = 365
    min_username_length: int = 3
    min_display_name_length: int = 2


DEFAULT_POLICY = AuditPolicy()


class AuditPolicyConfigError(RuntimeError):
    """Raised when an audit policy override cannot be parsed."""


def _load_override(path: Path) -> MutableMapping[str, object]:
    if not path.exists():
        raise AuditPolicyConfigError(f"Audit policy override file {path} does not exist.")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem failure
        raise AuditPolicyConfigError(f"Unable to read audit policy override file {path}: {exc}") from exc

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise AuditPolicyConfigError(f"Audit policy override {path} is not valid: {exc}") from exc

    if not isinstance(data, Mapping):
        raise AuditPolicyConfigError("Audit policy override must be a JSON/YAML object.")
    return dict(data)


def _coerce_policy(raw: Mapping[str, object]) -> AuditPolicy:
    known = {field.name for field in fields(AuditPolicy)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise AuditPolicyConfigError(f"Unknown audit policy keys: {', '.join(unknown)}")

    overrides: dict[str, int] = {}
    for key, value in raw.items():
        if isinstance(value, bool):
            raise AuditPolicyConfigError(f"Audit policy value for {key} must be an integer.")
        try:
            number = int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise AuditPolicyConfigError(f"Audit policy value for {key} must be an integer.") from exc
        if number < 0:
            raise AuditPolicyConfigError(f"Audit policy value for {key} must not be negative.")
        overrides[key] = number

    policy = replace(DEFAULT_POLICY, **overrides)
    if policy.junk_weak_age_days > policy.junk_strong_age_days:
        raise AuditPolicyConfigError("junk_weak_age_days cannot exceed junk_strong_age_days.")
    return policy


def load_policy(env: Mapping[str, str] | None = None) -> AuditPolicy:
    """
    Load the active audit policy.

    If ``AUDIT_POLICY_PATH`` is present in ``env`` its JSON/YAML content
    overrides the defaults; otherwise ``DEFAULT_POLICY`` is returned.
    """

    env_map = env or {}
    override_path = env_map.get("AUDIT_POLICY_PATH")
    if not override_path:
        return DEFAULT_POLICY
    return _coerce_policy(_load_override(Path(override_path)))


__all__ = [
    "AuditPolicy",
    "AuditPolicyConfigError",
    "DEFAULT_POLICY",
    "load_policy",
]
