from .sqlite import RecordStore, SettingsStore

__all__ = [
    "RecordStore",
    "SettingsStore",
]
