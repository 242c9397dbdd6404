"""Priority matrix: rule-based note and task classification for Obsidian vaults."""

__version__ = "0.1.0"
