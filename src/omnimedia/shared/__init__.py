"""OmniMedia Shared Module.

This package contains constants, error handling and logging used across OmniMedia.
"""

__all__ = ["constants", "errors", "logging"]
