"""HTTP service that assigns pull request reviewers within teams, stored in SQLite."""

__version__ = "0.1.0"