"""
decoder.py — Chaîne complète octets → lignes → groupes → registre.

Le décodeur ne possède ni port série, ni minuterie, ni publication : il
consomme des octets et met à jour un FieldRegistry.
"""

import logging
from typing import Iterable, Protocol

from tic_parser import (
    FrameAccumulator, NoSeparatorError, compute_checksum, decode_group,
    validate_checksum,
)
from app.registry import FieldRegistry, UpdateOutcome

log = logging.getLogger(__name__)


class ByteSource(Protocol):
    """Source d'octets interrogée sans blocage (UART, port série, fichier…)."""

    def available(self) -> int: ...

    def read(self) -> int: ...


class TicDecoder:
    """
    Décodeur TIC activable.

    Désactivé, il ignore tout ce qu'on lui donne : pas de lecture de la
    source, pas d'accumulation, pas de mise à jour du registre.
    """

    def __init__(self, registry: FieldRegistry | None = None, enabled: bool = True):
        self.registry     = registry if registry is not None else FieldRegistry()
        self.enabled      = enabled
        self._accumulator = FrameAccumulator()

    # ── Alimentation ───────────────────────────────────────────────────────────

    def feed(self, byte: int) -> UpdateOutcome | None:
        """
        Consomme un octet. Retourne le résultat de la mise à jour du registre
        si l'octet termine une ligne valide, None sinon.
        """
        if not self.enabled:
            return None
        frame = self._accumulator.feed(byte)
        if frame is None:
            return None
        return self.process_frame(frame)

    def feed_bytes(self, data: Iterable[int]) -> int:
        """Consomme une suite d'octets. Retourne le nombre de groupes acceptés."""
        if not self.enabled:
            return 0
        accepted = 0
        for byte in data:
            if self.feed(byte) is not None:
                accepted += 1
        return accepted

    def poll(self, source: ByteSource) -> int:
        """
        Lit tous les octets disponibles sur `source` sans jamais attendre.
        Retourne le nombre de groupes acceptés (checksum correcte).
        """
        if not self.enabled:
            return 0
        accepted = 0
        while source.available() > 0:
            if self.feed(source.read()) is not None:
                accepted += 1
        return accepted

    def reset(self) -> None:
        """Oublie la ligne en cours (ex : après une reconnexion série)."""
        self._accumulator.reset()

    # ── Traitement d'une ligne ─────────────────────────────────────────────────

    def process_frame(self, frame: str) -> UpdateOutcome | None:
        """Décode, vérifie et applique une ligne. None si elle est rejetée."""
        log.debug("TIC reçu : %r", frame)

        try:
            group = decode_group(frame)
        except NoSeparatorError as exc:
            log.debug("Ligne ignorée (format inattendu) : %s", exc)
            return None

        if not validate_checksum(frame, group.checksum):
            log.warning("Erreur de checksum : %r — reçue : %02X — calculée : %02X",
                        frame, ord(group.checksum), compute_checksum(frame))
            return None

        return self.registry.apply(group.label, group.value)
