"""
bridge.py — Boucle principale du bridge TIC → MQTT.

Responsabilités :
  - Ouverture et supervision du port série (reconnexion automatique)
  - Alimentation du décodeur TIC avec les octets disponibles
  - Publication périodique (PUBLISH_INTERVAL secondes) des champs modifiés
"""

import logging
import signal
import time
from typing import Optional

import serial

import config
from app.mqtt_client import MQTTClient
from app.decoder import TicDecoder
from app.publisher import publish_changed

log = logging.getLogger(__name__)


# ── Port série ─────────────────────────────────────────────────────────────────

def _open_serial() -> serial.Serial:
    parity_map = {
        "E": serial.PARITY_EVEN,
        "N": serial.PARITY_NONE,
        "O": serial.PARITY_ODD,
    }
    return serial.Serial(
        port     = config.SERIAL_PORT,
        baudrate = config.SERIAL_BAUD,
        bytesize = config.SERIAL_BITS,
        parity   = parity_map.get(config.SERIAL_PARITY.upper(), serial.PARITY_EVEN),
        stopbits = config.SERIAL_STOPS,
        timeout  = 0,
    )


class SerialByteSource:
    """Adapte un serial.Serial à l'interface available() / read() du décodeur."""

    def __init__(self, ser: serial.Serial):
        self._ser = ser

    def available(self) -> int:
        return self._ser.in_waiting

    def read(self) -> int:
        return self._ser.read(1)[0]


# ── Boucle principale ──────────────────────────────────────────────────────────

def run(mqtt: MQTTClient, decoder: TicDecoder) -> None:
    """
    Lit le port série en continu, alimente le décodeur et publie les
    changements sur MQTT toutes les PUBLISH_INTERVAL secondes.
    S'arrête proprement sur SIGTERM ou SIGINT.
    """
    log.info(
        "Bridge démarré — port=%s  broker=%s:%s  prefix=%s  interval=%ss",
        config.SERIAL_PORT, config.MQTT_HOST, config.MQTT_PORT,
        config.MQTT_PREFIX, config.PUBLISH_INTERVAL,
    )

    running = True

    def _stop(sig, _frame):
        nonlocal running
        log.info("Signal %s reçu → arrêt propre", sig)
        running = False

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT,  _stop)

    ser: Optional[serial.Serial] = None
    last_pub = time.monotonic()
    was_enabled = decoder.enabled

    while running:

        # ── Connexion / reconnexion série ──────────────────────────────────────
        if ser is None or not ser.is_open:
            try:
                ser = _open_serial()
                decoder.reset()
                log.info("Port série ouvert : %s", config.SERIAL_PORT)
            except serial.SerialException as exc:
                log.error("Impossible d'ouvrir %s : %s  → retry dans 10 s",
                          config.SERIAL_PORT, exc)
                time.sleep(10)
                continue

        # ── Lecture des octets disponibles ─────────────────────────────────────
        # serial.SerialException dérive d'OSError ; un tty débranché lève un
        # OSError (EIO) brut depuis in_waiting
        try:
            was_enabled = resync_if_reenabled(ser, decoder, was_enabled)
            accepted = decoder.poll(SerialByteSource(ser))
        except OSError as exc:
            log.error("Erreur lecture série : %s", exc)
            _close_serial(ser)
            ser = None
            continue

        # ── Publication périodique ─────────────────────────────────────────────
        last_pub = publish_if_due(mqtt, decoder, last_pub)

        if not accepted:
            time.sleep(config.POLL_DELAY)

    # ── Nettoyage ──────────────────────────────────────────────────────────────
    _close_serial(ser)
    log.info("Bridge arrêté")


def resync_if_reenabled(ser: serial.Serial, decoder: TicDecoder, was_enabled: bool) -> bool:
    """
    Vide le buffer d'entrée du port quand la lecture vient d'être réactivée :
    les octets accumulés pendant la coupure sont périmés.
    Retourne l'état courant de la lecture.
    """
    if decoder.enabled and not was_enabled:
        ser.reset_input_buffer()
        decoder.reset()
        log.info("Lecture TIC réactivée — buffer série vidé")
    return decoder.enabled


def publish_if_due(mqtt: MQTTClient, decoder: TicDecoder, last_pub: float,
                   now: Optional[float] = None) -> float:
    """
    Publie les changements si PUBLISH_INTERVAL est écoulé et que la lecture
    est active. Retourne l'instant de la dernière publication.
    """
    now = time.monotonic() if now is None else now
    if now - last_pub < config.PUBLISH_INTERVAL:
        return last_pub
    if decoder.enabled:
        count = publish_changed(mqtt, decoder.registry)
        if count:
            log.info("%d valeur(s) TIC publiée(s)", count)
    return now


def _close_serial(ser: Optional[serial.Serial]) -> None:
    if ser:
        try:
            ser.close()
        except OSError as exc:
            log.debug("Fermeture du port série : %s", exc)
