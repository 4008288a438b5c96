# verifymail/utils/rate_limiter.py
"""
Limitación de peticiones por cliente.

Se consulta desde la capa HTTP antes de emitir o verificar un código; el
ledger por sí solo no puede frenar un ataque de adivinación de códigos.

Niveles por defecto:
- send-code: 5 peticiones cada 15 minutos por IP (evita spam de correos)
- verify-code: 10 peticiones por minuto por IP (evita fuerza bruta)
"""

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

SEND_CODE_LIMIT = "5 per 15 minutes"
VERIFY_CODE_LIMIT = "10 per minute"


class RateLimiter:
    """
    Limitador de ventana fija en memoria sobre la librería limits.

    Args:
        limite (str): expresión de límite, p. ej. "5 per 15 minutes".
        namespace (str): prefijo para separar contadores de distintos endpoints.
    """

    def __init__(self, limite: str, namespace: str = "default", storage=None):
        self.limite = parse(limite)
        self.namespace = namespace
        self._storage = storage or MemoryStorage()
        self._limiter = FixedWindowRateLimiter(self._storage)

    def allow(self, client_key: str) -> bool:
        """Registra un intento y devuelve False si el cliente excedió el límite."""
        return self._limiter.hit(self.limite, self.namespace, client_key or "unknown")

    def remaining(self, client_key: str) -> int:
        stats = self._limiter.get_window_stats(self.limite, self.namespace, client_key or "unknown")
        return stats.remaining

    def reset(self) -> None:
        self._storage.reset()
