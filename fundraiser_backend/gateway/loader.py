"""
Chargement du widget de la passerelle alternative, injecté comme capacité.

Chargement idempotent (réutilise le widget déjà chargé), protégé par un asyncio.Lock,
avec une seule nouvelle tentative si le widget n'apparaît pas dans le délai imparti.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0


class GatewayUnavailable(Exception):
    pass


class GatewayLoader(Protocol):
    async def ensure_loaded(self) -> Any:
        ...


class ScriptGatewayLoader:
    """
    load_script: coroutine qui injecte/charge le script du fournisseur
    resolve_widget: retourne le widget (ex: PaystackPop) ou None tant qu'il n'est pas prêt
    """

    def __init__(
        self,
        load_script: Callable[[], Awaitable[None]],
        resolve_widget: Callable[[], Optional[Any]],
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        poll_interval: float = 0.05,
    ):
        self._load_script = load_script
        self._resolve_widget = resolve_widget
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._widget: Optional[Any] = None
        self._lock = asyncio.Lock()
        self.attempts = 0

    async def _load_once(self) -> Any:
        self.attempts += 1
        widget = self._resolve_widget()
        if widget is not None:
            return widget
        await self._load_script()
        while True:
            widget = self._resolve_widget()
            if widget is not None:
                return widget
            await asyncio.sleep(self.poll_interval)

    async def ensure_loaded(self) -> Any:
        async with self._lock:
            if self._widget is not None:
                return self._widget
            for attempt in (1, 2):
                try:
                    self._widget = await asyncio.wait_for(self._load_once(), timeout=self.timeout)
                    return self._widget
                except asyncio.TimeoutError:
                    logger.warning("gateway.loader timeout attempt=%s timeout=%ss", attempt, self.timeout)
            raise GatewayUnavailable("Le module de paiement n'a pas pu être chargé")
