"""
publisher.py — Publication MQTT des champs TIC modifiés.

Vide le FieldRegistry et publie chaque valeur sur `{MQTT_PREFIX}/{label}`.
Les index de consommation (Wh) sont convertis en kWh à la publication ;
le registre, lui, conserve toujours la valeur brute.
"""

import logging

from app.mqtt_client import MQTTClient
from app.registry import FieldRegistry

log = logging.getLogger(__name__)

# Index cumulés transmis en Wh
INDEX_LABELS = frozenset({"BASE", "HCHC", "HCHP", "EJPHN", "EJPHPM"})


def publish_changed(client: MQTTClient, registry: FieldRegistry) -> int:
    """
    Publie les champs modifiés depuis la dernière publication.
    Retourne le nombre de topics effectivement publiés.

    Un champ dont la publication échoue reste marqué modifié : il sera
    retenté au prochain appel.
    """
    published = 0
    for label, value in registry.drain_changed():
        payload = format_value(label, value)
        if client.publish(label.lower(), payload):
            log.info("%s update: %s", label, payload)
            published += 1
        else:
            registry.mark_dirty(label)
    return published


def format_value(label: str, value: int | float | str) -> int | float | str:
    """Valeur telle qu'elle doit apparaître sur MQTT."""
    if isinstance(value, str):
        return value
    if label in INDEX_LABELS:
        return _kwh(value)
    return value


# ── Utilitaire ─────────────────────────────────────────────────────────────────

def _kwh(wh: int | float) -> float:
    """Convertit des Wh en kWh, arrondi à 3 décimales."""
    return round(wh / 1000, 3)
