"""Core functionality for the jellykeys package."""

from jellykeys.core.provider import JellyfinProvider
from jellykeys.core.resources import APIKeyDataSource, APIKeyResource, APIKeyState

__all__ = ["JellyfinProvider", "APIKeyResource", "APIKeyDataSource", "APIKeyState"]
