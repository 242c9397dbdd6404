"""Per-file serialized vault mutations."""

from prioritymatrix.mutation.gateway import MutationGateway
from prioritymatrix.mutation.locks import KeyedLock

__all__ = ["KeyedLock", "MutationGateway"]
