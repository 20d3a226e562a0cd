# config/validation.py

"""
Start-up checks for a production deployment of the studio directory.

Each check inspects one environment variable and returns a message when it is
unusable. Development and testing environments are never checked; the
pipelines fall back to local SQLite there.
"""

import os
import sys
from typing import Callable, List, Mapping, Optional, Tuple

PLACEHOLDER_SECRETS = frozenset({"your-secret-key", "your_secret_key", "changeme"})

EnvCheck = Callable[[Mapping[str, str]], Optional[str]]


def _check_secret_key(env: Mapping[str, str]) -> Optional[str]:
    if env.get("SECRET_KEY", "") in PLACEHOLDER_SECRETS | {""}:
        return (
            "SECRET_KEY must be set to a random value, not a placeholder "
            '(e.g. python -c "import secrets; print(secrets.token_hex(32))").'
        )
    return None


def _check_database_url(env: Mapping[str, str]) -> Optional[str]:
    if not env.get("DATABASE_URL"):
        return "DATABASE_URL must point at the target PostgreSQL database."
    return None


def _check_legacy_url(env: Mapping[str, str]) -> Optional[str]:
    legacy_url = env.get("LEGACY_DATABASE_URL", "")
    if legacy_url and "://" not in legacy_url:
        return f"LEGACY_DATABASE_URL is not a SQLAlchemy URL: {legacy_url!r} (e.g. mysql+pymysql://user@host/db)."
    return None


def _check_audit_policy(env: Mapping[str, str]) -> Optional[str]:
    policy_path = env.get("AUDIT_POLICY_PATH")
    if policy_path and not os.path.exists(policy_path):
        return f"AUDIT_POLICY_PATH names a file that does not exist: {policy_path}"
    return None


PRODUCTION_CHECKS: Tuple[EnvCheck, ...] = (
    _check_secret_key,
    _check_database_url,
    _check_legacy_url,
    _check_audit_policy,
)


def validate_environment(flask_env: Optional[str] = None) -> Tuple[bool, List[str]]:
    """Return ``(ok, problems)``; only ``production`` is checked."""
    env = os.environ
    flask_env = flask_env or env.get("FLASK_ENV", "development")
    if flask_env != "production":
        return True, []

    problems = [message for message in (check(env) for check in PRODUCTION_CHECKS) if message]
    return not problems, problems


def validate_and_exit(flask_env: Optional[str] = None) -> None:
    """Abort start-up with exit status 1, listing every problem on stderr."""
    ok, problems = validate_environment(flask_env)
    if ok:
        return

    lines = [f"Studio directory refused to start: {len(problems)} environment problem(s)"]
    lines.extend(f"  - {problem}" for problem in problems)
    lines.append("Fix the variables above in the environment or .env file and restart.")
    print("\n".join(lines), file=sys.stderr)
    sys.exit(1)
