"""Remote story content: store contract and the GitHub implementation."""

from story_relay.content.store import ContentSnapshot, ContentStore, VersionToken

__all__ = ["ContentSnapshot", "ContentStore", "VersionToken"]
