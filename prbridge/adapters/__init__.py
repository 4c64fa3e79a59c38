"""Provider adapters (base and implementations)."""

from prbridge.adapters.base import ProviderAdapter
from prbridge.adapters.gitlab import GitLabAdapter

__all__ = ["ProviderAdapter", "GitLabAdapter"]
