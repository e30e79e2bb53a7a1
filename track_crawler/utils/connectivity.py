from __future__ import annotations

import logging
from typing import Callable, List, Optional

from aiohttp import ClientSession, ClientTimeout
import aiohttp

from .http import CONNECTIVITY_ERRORS, create_session

logger = logging.getLogger(__name__)

Listener = Callable[[bool], None]


class ConnectivityMonitor:
    """
    Online/offline signal: a boolean snapshot plus change notifications.

    ``check()`` verifies real internet access with a lightweight HEAD request;
    platform-level change events can be pushed in with ``set_online()``.
    """

    def __init__(
        self,
        check_url: str = "https://api.deezer.com/",
        *,
        timeout: float = 5.0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.check_url = check_url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._online: Optional[bool] = None
        self._listeners: List[Listener] = []

    @property
    def is_online(self) -> Optional[bool]:
        """Last known state; None until the first check or push."""
        return self._online

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        logger.info("Connectivity changed: %s", "online" if online else "offline")
        for listener in list(self._listeners):
            listener(online)

    async def check(self) -> bool:
        if self._session is None:
            self._session = create_session()
            self._owns_session = True
        try:
            async with self._session.head(self.check_url, timeout=ClientTimeout(total=self.timeout)) as resp:
                online = resp.status == 200
        except (*CONNECTIVITY_ERRORS, aiohttp.ClientError) as exc:
            logger.debug("Connectivity check failed: %r", exc)
            online = False
        self.set_online(online)
        return online

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
