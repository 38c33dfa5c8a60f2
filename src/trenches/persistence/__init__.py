from .paths import default_state_root
from .schema import validate_party_document
from .store import JsonFileStateStore, MemoryStateStore, StateStore, StoredDocument

__all__ = [
    "JsonFileStateStore",
    "MemoryStateStore",
    "StateStore",
    "StoredDocument",
    "default_state_root",
    "validate_party_document",
]
