"""Vault connector, parser and writer modules."""

from prioritymatrix.vault.connector import VaultConnector
from prioritymatrix.vault.parser import parse_note, parse_tasks
from prioritymatrix.vault.writer import MutationError, VaultWriter

__all__ = ["MutationError", "VaultConnector", "VaultWriter", "parse_note", "parse_tasks"]
