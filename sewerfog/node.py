"""Manhole node: samples its probes and publishes sensor packets over MQTT."""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import TextIO

from .config import NodeConfig
from .packet import SensorPacket


@dataclass(frozen=True)
class SensorReadings:
    """One set of probe values."""

    flow_m3_per_s: float
    fog_mg_per_l: float
    temperature_c: float
    battery_v: float
    quality_flags: int = 0


class Sensors:
    """The node's flow, FOG, temperature and battery probes (simulated)."""

    def __init__(self) -> None:
        self.started = False

    def begin(self) -> None:
        """Prepare the probes for sampling."""
        self.started = True

    def read_once(self) -> SensorReadings:
        """Take one reading from every probe."""
        return SensorReadings(
            flow_m3_per_s=0.008,
            fog_mg_per_l=200.0,
            temperature_c=25.0,
            battery_v=3.7,
            quality_flags=0,
        )


def make_packet(config: NodeConfig, timestamp_unix_s: int, readings: SensorReadings) -> SensorPacket:
    """Wrap readings into a packet stamped with the node id and time."""
    return SensorPacket(
        node_id=config.node_id,
        timestamp_s=timestamp_unix_s,
        flow_m3_per_s=readings.flow_m3_per_s,
        fog_mg_per_l=readings.fog_mg_per_l,
        temperature_c=readings.temperature_c,
        battery_v=readings.battery_v,
        quality_flags=readings.quality_flags,
    )


class MqttPublisher:
    """Publishes packets to an MQTT broker."""

    def __init__(self, host: str, port: int, out: TextIO | None = None) -> None:
        self.host = host
        self.port = port
        self._out = out

    def _print(self, message: str) -> None:
        print(message, file=self._out or sys.stdout)

    def connect(self) -> bool:
        """Open the connection to the broker."""
        self._print(f"Connecting to MQTT broker {self.host}:{self.port}")
        return True

    def publish(self, topic: str, packet: SensorPacket) -> bool:
        """Publish the packet's JSON document on ``topic``."""
        self._print(f"MQTT publish to {topic} payload={packet.to_json()}")
        return True


def _sample_and_publish(
    config: NodeConfig, sensors: Sensors, publisher: MqttPublisher, now: int
) -> SensorPacket:
    packet = make_packet(config, now, sensors.read_once())
    publisher.publish(config.mqtt_topic, packet)
    return packet


def main(argv: list[str] | None = None) -> int:
    """Sample and publish every configured period until interrupted."""
    cfg = NodeConfig.from_env()
    sensors = Sensors()
    sensors.begin()
    publisher = MqttPublisher(cfg.mqtt_broker_host, cfg.mqtt_broker_port)
    if not publisher.connect():
        return 1
    period = max(cfg.sample_period_seconds, 0.0)
    try:
        while True:
            _sample_and_publish(cfg, sensors, publisher, int(time.time()))
            time.sleep(period)
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())