from lofi.render.offline import OfflineRenderer

__all__ = ["OfflineRenderer"]
