"""multirepo - bulk clone, pull and inspect the repositories of a GitHub organization."""

__version__ = "0.3.0"
