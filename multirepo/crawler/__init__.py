"""Repository discovery module.

Import GitHubClient and RepositoryLister from ``multirepo.crawler.github_client``.
"""

from .models import RepositoryDescriptor
from .auth import resolve_token
from .local_scanner import scan_directory

__all__ = ["RepositoryDescriptor", "resolve_token", "scan_directory"]
