from .database import Database, connect, get_client, to_object_id, url_hash

__all__ = ["Database", "connect", "get_client", "to_object_id", "url_hash"]
