"""
mqtt_client.py — Connexion au broker MQTT, publication et interrupteur de lecture.
Compatible paho-mqtt 1.6.1.

La détection des changements est faite en amont par le FieldRegistry :
tout ce qui arrive ici est publié tel quel.

Interrupteur : un message ON / OFF sur `{MQTT_PREFIX}/enabled/set` active ou
coupe la lecture TIC ; l'état est republié (retain) sur `{MQTT_PREFIX}/enabled`.
"""

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from config import (
    MQTT_HOST, MQTT_PORT, MQTT_USER, MQTT_PASS,
    MQTT_CLIENT, MQTT_PREFIX,
)

log = logging.getLogger(__name__)

_RETRY_DELAY = 5    # secondes entre deux tentatives de connexion initiale

SWITCH_TOPIC = "enabled"

_ON_PAYLOADS  = {"on", "true", "1"}
_OFF_PAYLOADS = {"off", "false", "0"}


def parse_switch_payload(payload: bytes) -> Optional[bool]:
    """ON / OFF → True / False, None si le message n'est pas reconnu."""
    text = payload.decode("utf-8", errors="ignore").strip().lower()
    if text in _ON_PAYLOADS:
        return True
    if text in _OFF_PAYLOADS:
        return False
    return None


class MQTTClient:
    """
    Wrapper autour de paho-mqtt 1.6.1 avec :
      - retry de connexion initiale si le broker est injoignable au démarrage
      - reconnexion automatique via loop_start (paho gère le reconnect)
      - abonnement au topic de commande de l'interrupteur (renouvelé à chaque connexion)
    """

    def __init__(self, on_switch: Optional[Callable[[bool], None]] = None):
        # paho 1.6.1 : pas de reconnect_on_failure dans le constructeur
        self._client = mqtt.Client(
            client_id = MQTT_CLIENT,
            protocol  = mqtt.MQTTv5,
        )
        self._connected = False
        self._on_switch = on_switch
        self._switch_state: Optional[bool] = None

        if MQTT_USER:
            self._client.username_pw_set(MQTT_USER, MQTT_PASS)

        # paho 1.6.1 signatures (MQTTv5) :
        #   on_connect(client, userdata, flags, rc, properties)
        #   on_disconnect(client, userdata, rc, properties)
        self._client.on_connect    = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message    = self._on_message

    @property
    def connected(self) -> bool:
        return self._connected

    # ── Connexion ──────────────────────────────────────────────────────────────

    def connect(self) -> None:
        """
        Tente de se connecter au broker MQTT.
        Réessaie indéfiniment avec un délai si le broker est injoignable.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                log.info("Connexion MQTT → %s:%s (tentative %d)…",
                         MQTT_HOST, MQTT_PORT, attempt)
                self._client.connect(MQTT_HOST, MQTT_PORT, keepalive=60)
                self._client.loop_start()
                # Attendre la confirmation on_connect (max 10 s)
                for _ in range(20):
                    if self._connected:
                        return
                    time.sleep(0.5)
                log.warning("Pas de réponse du broker après 10 s — on continue quand même")
                return

            except OSError as exc:
                log.error("Connexion MQTT échouée : %s — retry dans %d s", exc, _RETRY_DELAY)
                time.sleep(_RETRY_DELAY)

    def disconnect(self) -> None:
        """Arrêt propre."""
        self._client.loop_stop()
        self._client.disconnect()
        log.info("MQTT déconnecté")

    # ── Publication ────────────────────────────────────────────────────────────

    def publish(self, topic: str, value, retain: bool = True) -> bool:
        """
        Publie `value` sur `{MQTT_PREFIX}/{topic}`.
        Retourne True si le message a bien été envoyé.
        """
        full_topic = f"{MQTT_PREFIX}/{topic}"
        str_value  = str(value)

        result = self._client.publish(full_topic, payload=str_value, retain=retain)

        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            log.warning("Échec publication %s (rc=%s)", full_topic, result.rc)
            return False

        log.debug("MQTT ↑ %s = %s", full_topic, str_value)
        return True

    def publish_switch_state(self, enabled: bool) -> bool:
        self._switch_state = enabled
        return self.publish(SWITCH_TOPIC, "ON" if enabled else "OFF")

    # ── Callbacks paho 1.6.1 ─────────────────────────────────────────────────

    def _on_connect(self, client, userdata, flags, rc, properties=None):
        # rc=0 : succès, autres valeurs : erreur
        if rc == 0:
            self._connected = True
            log.info("MQTT connecté à %s:%s", MQTT_HOST, MQTT_PORT)
            # Réabonnement à chaque connexion (gère les reconnexions)
            command_topic = f"{MQTT_PREFIX}/{SWITCH_TOPIC}/set"
            client.subscribe(command_topic)
            log.info("Abonné à %s", command_topic)
            if self._switch_state is not None:
                self.publish_switch_state(self._switch_state)
        else:
            log.error("MQTT connexion refusée (rc=%s)", rc)

    def _on_disconnect(self, client, userdata, rc, properties=None):
        self._connected = False
        if rc == 0:
            log.info("MQTT déconnecté proprement")
        else:
            log.warning("MQTT déconnecté de façon inattendue (rc=%s) — reconnexion auto…", rc)

    def _on_message(self, client, userdata, msg):
        state = parse_switch_payload(msg.payload)
        if state is None:
            log.warning("Commande ignorée sur %s : %r", msg.topic, msg.payload)
            return
        log.info("Interrupteur TIC → %s", "ON" if state else "OFF")
        if self._on_switch is not None:
            self._on_switch(state)
        self.publish_switch_state(state)
