from .database import Database, normalize_url

__all__ = ["Database", "normalize_url"]
