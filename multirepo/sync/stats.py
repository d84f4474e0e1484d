"""Primary-language statistics over a repository stream."""

import logging
from collections import Counter
from typing import Iterable

from rich.console import Console
from rich.table import Table

from ..crawler.models import RepositoryDescriptor

logger = logging.getLogger(__name__)


def tally_languages(repos: Iterable[RepositoryDescriptor]) -> list[tuple[str, int]]:
    """Count repositories per primary language.

    Drains *repos* completely. Repositories without a detected language are
    skipped. Entries are ordered by count descending, then by language name
    so equal counts always come out in the same order.
    """
    counts: Counter[str] = Counter()
    for repo in repos:
        if not repo.language:
            continue
        counts[repo.language] += 1
        logger.debug("%s is in %s", repo.name, repo.language)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def print_language_stats(tally: list[tuple[str, int]], console: Console) -> None:
    """Pretty print a language tally."""
    if not tally:
        console.print("[yellow]No languages detected[/yellow]")
        return

    table = Table(title="Repository Languages")
    table.add_column("Language", style="cyan")
    table.add_column("Repositories", style="magenta", justify="right")
    for language, count in tally:
        table.add_row(language, str(count))
    console.print(table)
