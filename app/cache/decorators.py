from functools import wraps
from typing import Any, Callable

from app.models import Source


def _to_primitive(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, (list, tuple)):
        return [_to_primitive(v) for v in value]
    return value


def read_through(key_builder: Callable[..., str], ttl: Callable[..., int]):
    """
    Decorator for async service methods that read through ``self.cache``.

    key_builder and ttl receive the same args as the method (self first).
    The wrapped method returns ``(Source, value)``; on a miss the loaded
    value is converted to JSON primitives before caching so a miss and the
    following hit return identical data.
    Example:
      @read_through(lambda svc: "tasks:all", ttl=lambda svc: 60)
      async def list(self): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            key = key_builder(self, *args, **kwargs)

            cached = await self.cache.get(key)
            if cached is not None:
                return Source.CACHE, cached

            value = _to_primitive(await fn(self, *args, **kwargs))
            await self.cache.set_with_expiry(key, value, ttl(self, *args, **kwargs))
            return Source.DATABASE, value

        return wrapper

    return decorator


def invalidates(key_builder: Callable[..., str]):
    """
    Delete the cache key after the wrapped write returns.

    Nothing is deleted when the write raises.
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            result = await fn(self, *args, **kwargs)
            await self.cache.delete(key_builder(self, *args, **kwargs))
            return result

        return wrapper

    return decorator
