"""API token resolution: flag, environment, then the gh CLI."""

import logging
import os
import subprocess
from pathlib import Path

import yaml

from ..errors import CredentialError

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("GH_TOKEN", "GITHUB_TOKEN")
GH_HOSTS_FILE = Path("~/.config/gh/hosts.yml")
LOGIN_HINT = "please login with gh cli or specify --gh-token flag or GH_TOKEN env var"


def read_gh_cli_token(runner=subprocess.run) -> str | None:
    """Ask the gh CLI for its token. None if gh is missing or logged out."""
    try:
        proc = runner(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.debug("gh CLI not available: %s", e)
        return None
    if proc.returncode != 0:
        logger.debug("gh auth token failed: %s", proc.stderr.strip())
        return None
    return proc.stdout.strip() or None


def read_gh_hosts_token(hosts_file: Path = GH_HOSTS_FILE, host: str = "github.com") -> str | None:
    """Read the oauth token stored by older gh versions in hosts.yml."""
    path = hosts_file.expanduser()
    if not path.exists():
        return None
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise CredentialError(f"failed to parse {path}: {e}") from e
    entry = data.get(host) if isinstance(data, dict) else None
    if not isinstance(entry, dict):
        return None
    return entry.get("oauth_token") or None


def resolve_token(
    explicit: str | None = None,
    env: dict[str, str] | None = None,
    runner=subprocess.run,
    hosts_file: Path = GH_HOSTS_FILE,
) -> str:
    """Return the first available token.

    Priority: explicit value, GH_TOKEN / GITHUB_TOKEN, ``gh auth token``,
    then ``~/.config/gh/hosts.yml``.
    """
    if explicit:
        return explicit

    env = os.environ if env is None else env
    for name in TOKEN_ENV_VARS:
        if env.get(name):
            logger.debug("Using token from %s", name)
            return env[name]

    token = read_gh_cli_token(runner) or read_gh_hosts_token(hosts_file)
    if token:
        return token
    raise CredentialError(LOGIN_HINT)
