from .record_store import RecordStore, RecordStoreError

__all__ = ["RecordStore", "RecordStoreError"]
