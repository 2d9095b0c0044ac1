from .store import ChatSessionStore

__all__ = ["ChatSessionStore"]
