from .watcher import WatchBinding, Watcher

__all__ = ["Watcher", "WatchBinding"]
