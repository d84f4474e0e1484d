"""Clone and pull primitives backed by the ``git`` executable."""

import logging
import os
import subprocess
from pathlib import Path
from typing import Callable

from rich.console import Console
from rich.text import Text

from ..errors import TransferError
from .outcomes import SyncOutcome, SyncStatus, classify_failure, is_up_to_date

logger = logging.getLogger(__name__)

TOKEN_ENV = "MULTIREPO_GIT_TOKEN"
# Reads the token from the subprocess environment so it never shows up in argv.
CREDENTIAL_HELPER = (
    '!f() { echo username=x-access-token; echo "password=$' + TOKEN_ENV + '"; }; f'
)

Runner = Callable[..., subprocess.CompletedProcess]


class GitTransfer:
    """Runs ``git clone`` / ``git pull`` and classifies what happened.

    Every call is blocking and independent, so one instance can be shared
    by all sync workers.
    """

    def __init__(
        self,
        token: str | None = None,
        force_color: bool = True,
        console: Console | None = None,
        runner: Runner = subprocess.run,
        git: str = "git",
    ):
        self.token = token
        self.force_color = force_color
        self.console = console or Console()
        self.runner = runner
        self.git = git

    def _command(self, *args: str) -> list[str]:
        cmd = [self.git]
        if self.token:
            cmd.extend(["-c", "credential.helper=", "-c", f"credential.helper={CREDENTIAL_HELPER}"])
        if self.force_color:
            cmd.extend(["-c", "color.ui=always"])
        cmd.extend(args)
        return cmd

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self.token:
            env[TOKEN_ENV] = self.token
        return env

    def _run(self, repo: str, operation: str, cmd: list[str], cwd: Path | None) -> subprocess.CompletedProcess:
        try:
            return self.runner(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=self._env(),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise TransferError(repo, operation, str(e)) from e

    def clone(self, repo: str, url: str, target: Path) -> SyncOutcome:
        """Clone *url* into *target*.

        A non-empty existing target is reported as skipped rather than failed;
        any other git failure raises TransferError.
        """
        logger.info("Cloning %s to %s", repo, target)
        proc = self._run(repo, "clone", self._command("clone", url, str(target)), None)
        if proc.returncode != 0:
            status = classify_failure("clone", proc.stderr)
            if status is SyncStatus.SKIPPED_ALREADY_EXISTS:
                logger.debug("Repo already exists, skipping: %s", repo)
                return SyncOutcome(repo, status, reason=proc.stderr.strip())
            raise TransferError(
                repo, "clone", f"git exited with status {proc.returncode}",
                returncode=proc.returncode, stderr=proc.stderr,
            )
        return SyncOutcome(repo, SyncStatus.CLONED)

    def pull(self, repo: str, url: str, branch: str, target: Path) -> SyncOutcome:
        """Fast-forward the checkout in *target*.

        With an empty url or branch the checkout's configured upstream is used.
        """
        logger.info("Pulling %35s in %s", repo, target)
        if not target.is_dir():
            raise TransferError(repo, "pull", f"target directory {target} does not exist")

        args = ["pull", "--ff-only"]
        if url and branch:
            args.extend([url, branch])
        proc = self._run(repo, "pull", self._command(*args), target)

        if proc.returncode != 0:
            status = classify_failure("pull", proc.stderr)
            if status is SyncStatus.SKIPPED_NO_DEFAULT_BRANCH:
                logger.warning("No default branch found, skipping: %s", repo)
                return SyncOutcome(repo, status, reason=proc.stderr.strip())
            raise TransferError(
                repo, "pull", f"git exited with status {proc.returncode}",
                returncode=proc.returncode, stderr=proc.stderr,
            )

        if is_up_to_date(proc.stdout):
            return SyncOutcome(repo, SyncStatus.UP_TO_DATE)
        if proc.stdout:
            self.console.print(Text.from_ansi(proc.stdout.rstrip("\n")), soft_wrap=True)
        return SyncOutcome(repo, SyncStatus.PULLED, output=proc.stdout)
