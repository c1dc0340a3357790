"""
config.py — Paramètres centralisés (chargés depuis .env / variables d'environnement)
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "on", "yes")


# ── Port série ─────────────────────────────────────────────────────────────────
SERIAL_PORT     = os.getenv("SERIAL_PORT",   "/dev/ttyUSB0")
SERIAL_BAUD     = int(os.getenv("SERIAL_BAUD",   "1200"))
SERIAL_BITS     = int(os.getenv("SERIAL_BITS",   "7"))
SERIAL_PARITY   = os.getenv("SERIAL_PARITY", "E")   # E=Even, N=None, O=Odd
SERIAL_STOPS    = int(os.getenv("SERIAL_STOPS",  "1"))

# ── Broker MQTT ────────────────────────────────────────────────────────────────
MQTT_HOST       = os.getenv("MQTT_HOST",   "localhost")
MQTT_PORT       = int(os.getenv("MQTT_PORT",   "1883"))
MQTT_USER       = os.getenv("MQTT_USER",   "")
MQTT_PASS       = os.getenv("MQTT_PASS",   "")
MQTT_CLIENT     = os.getenv("MQTT_CLIENT", "tic2mqtt")
MQTT_PREFIX     = os.getenv("MQTT_PREFIX", "tic")

# ── Comportement du bridge ─────────────────────────────────────────────────────
# Intervalle entre deux publications des valeurs modifiées
PUBLISH_INTERVAL = float(os.getenv("PUBLISH_INTERVAL", "10"))
# Pause quand aucun octet n'est disponible sur le port série
POLL_DELAY       = float(os.getenv("POLL_DELAY", "0.1"))
# Lecture active au démarrage (modifiable ensuite via {MQTT_PREFIX}/enabled/set)
TIC_ENABLED      = _env_bool("TIC_ENABLED", "true")

LOG_LEVEL        = os.getenv("LOG_LEVEL", "INFO").upper()
