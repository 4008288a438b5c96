# verifymail/utils/otp_manager.py

# ALMACENAMIENTO DE OTPs (en memoria)
import hmac
import threading
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Dict, List, Optional

# Tiempo de validez por defecto: 10 minutos.
TTL_POR_DEFECTO = 10 * 60


class ConsumeResult(Enum):
    """Resultado preciso de consumir un desafío."""
    MATCHED = "matched"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"


@dataclass
class Challenge:
    """
    Desafío OTP pendiente asociado a un correo.

    Solo el ledger guarda instancias vivas; hacia afuera se entregan copias.
    """
    identity: str
    code: str
    issued_at: float
    expires_at: float
    attempts: int = 0

    def expirado(self, ahora: float) -> bool:
        return ahora >= self.expires_at


class _Shard:
    __slots__ = ("lock", "registros")

    def __init__(self):
        self.lock = threading.Lock()
        self.registros: Dict[str, Challenge] = {}


def _codigos_iguales(guardado: str, ingresado: str) -> bool:
    # compare_digest con str exige ASCII; con bytes acepta cualquier entrada.
    return hmac.compare_digest(guardado.encode("utf-8"), ingresado.encode("utf-8"))


class OTPLedger:
    """
    Almacén de desafíos OTP con expiración y consumo de un solo uso.

    El mapa se divide en shards, cada uno con su propio lock, para que
    identidades distintas no se bloqueen entre sí. Todas las operaciones
    sobre una misma identidad caen en el mismo shard y quedan serializadas.

    Seguridad:
    - Un código correcto se elimina en el mismo paso en que se compara,
      así dos verificaciones concurrentes nunca aciertan las dos.
    - Los desafíos expirados se eliminan al leerlos (expiración perezosa);
      sweep() limpia los abandonados.
    - Nunca se hace I/O mientras se mantiene un lock.
    """

    def __init__(self, shards: int = 16, clock: Callable[[], float] = time.time):
        if shards < 1:
            raise ValueError("shards debe ser al menos 1")
        self._clock = clock
        self._shards: List[_Shard] = [_Shard() for _ in range(shards)]

    def _shard_de(self, identity: str) -> _Shard:
        indice = hash(identity) % len(self._shards)
        return self._shards[indice]

    def put(self, identity: str, code: str, ttl: float = TTL_POR_DEFECTO) -> None:
        """
        Guarda un desafío nuevo para la identidad, reemplazando cualquier anterior.

        Args:
            identity (str): correo electrónico ya normalizado.
            code (str): código de 6 dígitos.
            ttl (float): tiempo de validez en segundos.
        """
        shard = self._shard_de(identity)
        with shard.lock:
            ahora = self._clock()
            shard.registros[identity] = Challenge(
                identity=identity,
                code=code,
                issued_at=ahora,
                expires_at=ahora + ttl,
            )

    def consume(self, identity: str, submitted_code: str) -> ConsumeResult:
        """
        Verifica y consume el desafío de una identidad en una sola operación atómica.

        Args:
            identity (str): correo electrónico ya normalizado.
            submitted_code (str): código proporcionado por el usuario.

        Returns:
            ConsumeResult: NOT_FOUND si no hay desafío, EXPIRED si venció (y se
            elimina), MATCHED si coincide (y se elimina), MISMATCH si no coincide
            (se incrementa attempts y el desafío sigue vivo).
        """
        shard = self._shard_de(identity)
        with shard.lock:
            registro = shard.registros.get(identity)
            if registro is None:
                return ConsumeResult.NOT_FOUND
            if registro.expirado(self._clock()):
                del shard.registros[identity]
                return ConsumeResult.EXPIRED
            if _codigos_iguales(registro.code, submitted_code):
                del shard.registros[identity]  # OTP de un solo uso
                return ConsumeResult.MATCHED
            registro.attempts += 1
            return ConsumeResult.MISMATCH

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Elimina todos los desafíos con expires_at <= now.

        Returns:
            int: cantidad de desafíos eliminados.
        """
        if now is None:
            now = self._clock()
        eliminados = 0
        for shard in self._shards:
            with shard.lock:
                vencidos = [k for k, r in shard.registros.items() if r.expires_at <= now]
                for identity in vencidos:
                    del shard.registros[identity]
                eliminados += len(vencidos)
        return eliminados

    def peek(self, identity: str) -> Optional[Challenge]:
        """Devuelve una copia del desafío vivo, o None si no existe o expiró."""
        shard = self._shard_de(identity)
        with shard.lock:
            registro = shard.registros.get(identity)
            if registro is None or registro.expirado(self._clock()):
                return None
            return replace(registro)

    def shutdown(self) -> None:
        """Descarta todo el estado del ledger."""
        for shard in self._shards:
            with shard.lock:
                shard.registros.clear()

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.registros)
        return total
