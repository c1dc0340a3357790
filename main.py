"""
main.py — TeleInfo (TIC historique) to MQTT.

Reads the TIC stream of an electricity meter on a serial port,
decodes and checks each group,
and publishes the values that changed to MQTT at a fixed interval.
"""

import logging

import config
from app.mqtt_client import MQTTClient
from app.decoder import TicDecoder
from bridge import run

VERSION = "1.0.0"

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)

logger = logging.getLogger('tic2mqtt')


def main():
    logger.info("=" * 50)
    logger.info("  tic2mqtt — TeleInfo to MQTT")
    logger.info("  version: %s  ", VERSION)
    logger.info("=" * 50)
    decoder = TicDecoder(enabled=config.TIC_ENABLED)

    def _switch(state: bool) -> None:
        decoder.enabled = state

    mqtt = MQTTClient(on_switch=_switch)
    mqtt.connect()
    mqtt.publish_switch_state(decoder.enabled)
    try:
        run(mqtt, decoder)
    finally:
        mqtt.disconnect()


if __name__ == "__main__":
    main()
