"""
Test Configuration
==================

Fixtures partagées : construction de lignes TIC, registre, décodeur,
source d'octets et client MQTT factices.
"""

import pytest

from app.decoder import TicDecoder
from app.registry import FieldRegistry


def tic_checksum(payload: str) -> str:
    """Checksum de référence, calculée indépendamment du code testé."""
    return chr((sum(payload.encode("ascii")) & 0x3F) + 0x20)


def tic_line(label: str, value: str) -> bytes:
    """Octets d'un groupe TIC complet : LF LABEL SP VALEUR SP CHECKSUM CR."""
    payload = f"{label} {value}"
    return f"\n{payload} {tic_checksum(payload)}\r".encode("ascii")


class FakeByteSource:
    """Source d'octets en mémoire avec l'interface available() / read()."""

    def __init__(self, data: bytes = b""):
        self.data = bytearray(data)
        self.reads = 0

    def push(self, data: bytes) -> None:
        self.data.extend(data)

    def available(self) -> int:
        return len(self.data)

    def read(self) -> int:
        self.reads += 1
        return self.data.pop(0)


class FakeMQTTClient:
    """Enregistre les publications au lieu de les envoyer."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.published: list[tuple[str, object]] = []

    def publish(self, topic, value, retain=True) -> bool:
        if not self.succeed:
            return False
        self.published.append((topic, value))
        return True


@pytest.fixture
def line():
    return tic_line


@pytest.fixture
def registry():
    return FieldRegistry()


@pytest.fixture
def decoder(registry):
    return TicDecoder(registry)


@pytest.fixture
def byte_source():
    return FakeByteSource()


@pytest.fixture
def mqtt_client():
    return FakeMQTTClient()
