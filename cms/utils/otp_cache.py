import time
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional


class OtpStatus(str, Enum):
    APPROVED = "approved"
    INVALID = "invalid"
    EXPIRED = "expired"
    MAX_ATTEMPTS_REACHED = "max_attempts_reached"


@dataclass
class OtpEntry:
    code: str
    expires_at: float
    attempts: int = 0


class OtpCache:
    """
    Códigos de verificação em memória, indexados por telefone, com validade fixa.

    O estado é do processo: reiniciar o servidor descarta os códigos pendentes.
    Cada código aceita `max_attempts` tentativas erradas; ao atingir o limite
    ele é descartado e um novo envio é necessário.
    O relógio é injetável para que a expiração possa ser testada sem esperas.
    """

    def __init__(self, ttl_seconds: float, max_attempts: int = 3,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._clock = clock
        self._entries: Dict[str, OtpEntry] = {}
        self._lock = threading.Lock()

    def put(self, key: str, code: str) -> None:
        with self._lock:
            self._entries[key] = OtpEntry(code=code, expires_at=self._clock() + self.ttl_seconds)

    def check(self, key: str, code: str) -> Optional[OtpStatus]:
        """Retorna None quando não há código para a chave. Um código aprovado é consumido."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < self._clock():
                del self._entries[key]
                return OtpStatus.EXPIRED
            if entry.code != code:
                entry.attempts += 1
                if entry.attempts >= self.max_attempts:
                    del self._entries[key]
                    return OtpStatus.MAX_ATTEMPTS_REACHED
                return OtpStatus.INVALID
            del self._entries[key]
            return OtpStatus.APPROVED

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
