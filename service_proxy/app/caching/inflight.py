"""
Single-flight coalescing of concurrent identical requests.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict

from shared.logging import get_logger


class InFlightRegistry:
    """
    Collapses concurrent calls for the same key into one.

    The first caller for a key runs ``factory``; callers arriving while it is
    pending await the same future and receive the same result or exception.
    The key is released as soon as the call settles.
    """

    def __init__(self):
        self.logger = get_logger("proxy.inflight")
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}

    def __len__(self) -> int:
        return len(self._pending)

    async def run(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        pending = self._pending.get(key)
        if pending is not None:
            self.logger.debug("Joining in-flight request", key=key)
            return await asyncio.shield(pending)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._pending[key] = future
        try:
            result = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unjoined failure does not warn at GC
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            self._pending.pop(key, None)
