"""helperbot: a developer's command-line assistant."""

__version__ = "0.1.0"
