from .store import InMemoryReadingStore, ReadingStore, StoreError

__all__ = ["InMemoryReadingStore", "ReadingStore", "StoreError"]
