'''
CacheStore is the persistence contract of the failover state: a key-value store whose
entries expire after a time-to-live. Values are plain strings; callers serialize.
Stores that can group keys under a tag and drop the whole group at once set
supports_tags = True and implement flush_tag().
'''

from abc import ABC, abstractmethod
from typing import Optional


class CacheStore(ABC):
    supports_tags = False

    @abstractmethod
    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        pass

    @abstractmethod
    def put(self, key: str, value: str, ttl_seconds: int, tag: Optional[str] = None):
        pass

    def flush_tag(self, tag: str):
        raise NotImplementedError(f"{type(self).__name__} does not support tags")
