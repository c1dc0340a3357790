"""
registry.py — Table des étiquettes TIC connues et suivi des changements.

Chaque étiquette connue possède un champ typé (numérique ou texte) et un
drapeau "modifié depuis la dernière publication". Le publisher vide ces
drapeaux via drain_changed() à son propre rythme.
"""

import enum
import logging
import re
import threading
from dataclasses import dataclass, replace

log = logging.getLogger(__name__)


class FieldKind(enum.Enum):
    NUMERIC = "numeric"
    TEXT    = "text"


class UpdateOutcome(enum.Enum):
    CHANGED   = "changed"
    UNCHANGED = "unchanged"
    IGNORED   = "ignored"


# ── Table des étiquettes ───────────────────────────────────────────────────────

# label : (type, description)
LABELS: dict[str, tuple[FieldKind, str]] = {
    "ADCO":    (FieldKind.TEXT,    "Adresse du compteur"),
    "OPTARIF": (FieldKind.TEXT,    "Option tarifaire choisie"),
    "ISOUSC":  (FieldKind.NUMERIC, "Intensité souscrite (A)"),
    "BASE":    (FieldKind.NUMERIC, "Index option Base (Wh)"),
    "HCHC":    (FieldKind.NUMERIC, "Index heures creuses (Wh)"),
    "HCHP":    (FieldKind.NUMERIC, "Index heures pleines (Wh)"),
    "EJPHN":   (FieldKind.NUMERIC, "Index EJP heures normales (Wh)"),
    "EJPHPM":  (FieldKind.NUMERIC, "Index EJP heures de pointe mobile (Wh)"),
    "PTEC":    (FieldKind.TEXT,    "Période tarifaire en cours"),
    "IINST":   (FieldKind.NUMERIC, "Intensité instantanée (A)"),
    "IMAX":    (FieldKind.NUMERIC, "Intensité maximale appelée (A)"),
    "PAPP":    (FieldKind.NUMERIC, "Puissance apparente (VA)"),
    "HHPHC":   (FieldKind.TEXT,    "Horaire heures pleines / heures creuses"),
}

_NUMBER_RE = re.compile(r"[+-]?\d+(?:\.\d+)?")


@dataclass
class Field:
    label: str
    kind: FieldKind
    description: str = ""
    value: int | float | str = 0
    dirty: bool = False
    parse_error: bool = False


def parse_number(value: str) -> int | float | None:
    """
    Conversion décimale indépendante de la locale.
    Retourne un int si la valeur est entière, None si elle n'est pas numérique.
    """
    if not _NUMBER_RE.fullmatch(value):
        return None
    if "." not in value:
        return int(value)
    f = float(value)
    return int(f) if f == int(f) else f


# ── Registre ──────────────────────────────────────────────────────────────────

class FieldRegistry:
    """
    Champs TIC indexés par étiquette.

    apply() est appelé depuis la lecture série, drain_changed() depuis la
    publication périodique : les deux passent par le même verrou.
    """

    def __init__(self, labels: dict[str, tuple[FieldKind, str]] = LABELS):
        self._lock = threading.Lock()
        self._fields: dict[str, Field] = {
            label: Field(
                label       = label,
                kind        = kind,
                description = description,
                value       = 0 if kind is FieldKind.NUMERIC else "",
            )
            for label, (kind, description) in labels.items()
        }

    def __contains__(self, label: str) -> bool:
        return label in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def labels(self) -> list[str]:
        return list(self._fields)

    def apply(self, label: str, value: str) -> UpdateOutcome:
        """Met à jour le champ `label` si la valeur reçue diffère de la valeur connue."""
        field = self._fields.get(label)
        if field is None:
            log.info("Donnée ignorée : %s %s", label, value)
            return UpdateOutcome.IGNORED

        parse_error = False
        if field.kind is FieldKind.NUMERIC:
            new_value = parse_number(value)
            if new_value is None:
                log.warning("Valeur non numérique pour %s : %r — prise à 0", label, value)
                new_value = 0
                parse_error = True
        else:
            new_value = value

        with self._lock:
            field.parse_error = parse_error
            if field.value == new_value:
                return UpdateOutcome.UNCHANGED
            field.value = new_value
            field.dirty = True

        log.debug("%s ← %r", label, new_value)
        return UpdateOutcome.CHANGED

    def drain_changed(self) -> list[tuple[str, int | float | str]]:
        """Retourne les champs modifiés depuis le dernier appel et remet leurs drapeaux à zéro."""
        with self._lock:
            changed = [(f.label, f.value) for f in self._fields.values() if f.dirty]
            for f in self._fields.values():
                f.dirty = False
        return changed

    def mark_dirty(self, label: str) -> None:
        """Remet le drapeau d'un champ (ex : publication échouée, à retenter au prochain drain)."""
        with self._lock:
            field = self._fields.get(label)
            if field is not None:
                field.dirty = True

    def get(self, label: str) -> Field | None:
        """Copie du champ `label` (None si l'étiquette est inconnue)."""
        with self._lock:
            field = self._fields.get(label)
            return replace(field) if field else None

    def snapshot(self) -> dict[str, int | float | str]:
        with self._lock:
            return {f.label: f.value for f in self._fields.values()}
