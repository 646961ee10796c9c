"""Definition loading, sync strategies and simulator data encoding for shared cockpits."""

__version__ = "0.1.0"