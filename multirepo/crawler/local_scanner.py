"""Find existing git checkouts below a directory."""

import subprocess
from pathlib import Path


def is_git_repo(path: Path, runner=subprocess.run) -> bool:
    """True if *path* is inside a git working tree."""
    try:
        proc = runner(
            ["git", "rev-parse", "--is-inside-work-tree"],
            cwd=str(path),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return False
    return proc.returncode == 0


def scan_directory(path: Path | str, runner=subprocess.run) -> list[str]:
    """Names of the immediate subdirectories of *path* that are git checkouts.

    Raises OSError if *path* cannot be listed.
    """
    base = Path(path)
    return [
        entry.name
        for entry in sorted(base.iterdir())
        if entry.is_dir() and is_git_repo(entry, runner)
    ]
