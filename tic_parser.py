"""
tic_parser.py — Découpage et validation des groupes TIC historique.

Protocole : le compteur émet en continu des lignes de la forme
    LF LABEL SP VALEUR SP CHECKSUM CR
Le LF marque le début d'un groupe, le CR sa fin.
"""

import logging
from dataclasses import dataclass

log = logging.getLogger(__name__)

# Taille maximale d'une ligne : au-delà, le flux est considéré comme corrompu
MAX_FRAME_LENGTH = 50

CR = 0x0D
LF = 0x0A

SEPARATORS = (" ", "\t")

# latin-1 : un octet ↔ un caractère, la checksum reste une somme d'octets
ENCODING = "latin-1"


class TicParseError(ValueError):
    """Ligne TIC non décodable."""


class NoSeparatorError(TicParseError):
    """Il manque un séparateur entre label, valeur et checksum."""


@dataclass(frozen=True)
class DecodedGroup:
    label: str
    value: str
    checksum: str
    frame: str


# ── Accumulation des octets ────────────────────────────────────────────────────

class FrameAccumulator:
    """
    Reçoit le flux série octet par octet et restitue les lignes complètes.

    Aucun résultat partiel : une ligne rendue contient exactement les octets
    reçus depuis le dernier LF / CR, sans délimiteur.
    """

    def __init__(self, max_length: int = MAX_FRAME_LENGTH):
        self._max_length = max_length
        self._buf = bytearray()

    def __len__(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        self._buf.clear()

    def feed(self, byte: int) -> str | None:
        """Ajoute un octet. Retourne la ligne si `byte` est un CR, sinon None."""
        if byte == CR:
            if not self._buf:
                return None
            frame = self._buf.decode(ENCODING)
            self._buf.clear()
            return frame

        if byte == LF:
            # Début d'un nouveau groupe
            self._buf.clear()
            return None

        self._buf.append(byte)

        if len(self._buf) > self._max_length:
            log.warning("Buffer trop long (> %d caractères), vidé : %r…",
                        self._max_length,
                        self._buf[:self._max_length].decode(ENCODING))
            self._buf.clear()

        return None


# ── Découpage LABEL / VALEUR / CHECKSUM ───────────────────────────────────────

def _find_separator(text: str, start: int = 0) -> int:
    positions = [p for p in (text.find(s, start) for s in SEPARATORS) if p >= 0]
    return min(positions) if positions else -1


def decode_group(frame: str) -> DecodedGroup:
    """
    Découpe une ligne en (label, valeur, checksum).

    La checksum est toujours le dernier caractère de la ligne : elle peut
    elle-même être un espace, d'où l'absence de split() naïf.
    """
    first = _find_separator(frame)
    if first < 0:
        raise NoSeparatorError(f"aucun séparateur dans {frame!r}")

    second = _find_separator(frame, first + 1)
    if second < 0:
        raise NoSeparatorError(f"pas de checksum dans {frame!r}")

    return DecodedGroup(
        label    = frame[:first],
        value    = frame[first + 1:second],
        checksum = frame[-1],
        frame    = frame,
    )


# ── Checksum ──────────────────────────────────────────────────────────────────

def compute_checksum(frame: str) -> int:
    """
    Calcule la checksum TIC d'une ligne complète.

    Algorithme Enedis : somme des octets jusqu'au dernier séparateur exclu,
    modulo 256, on garde les 6 bits de poids faible et on ajoute 0x20.
    """
    total = sum(frame[:-2].encode(ENCODING, errors="replace")) % 256
    return (total & 0x3F) + 0x20


def validate_checksum(frame: str, checksum: str | int) -> bool:
    if isinstance(checksum, str):
        if len(checksum) != 1:
            return False
        checksum = ord(checksum)
    return compute_checksum(frame) == checksum
