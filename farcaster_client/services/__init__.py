"""Shared request and queueing primitives used by the API clients."""

from .mention_queue import MentionQueue
from .requester import RateLimitedRequester

__all__ = [
    "MentionQueue",
    "RateLimitedRequester",
]
