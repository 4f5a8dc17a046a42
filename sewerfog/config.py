"""Runtime settings for the node, edge gateway and chat service, read from the environment."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Mapping

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def _leading_int(text: str) -> int:
    """Parse the integer at the start of ``text``; 0 when there is none."""
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _leading_float(text: str) -> float:
    """Parse the number at the start of ``text``; 0.0 when there is none."""
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = env.get(key)
    return default if value is None else _leading_int(value)


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    value = env.get(key)
    return default if value is None else _leading_float(value)


@dataclass(frozen=True)
class GatewayConfig:
    """Where the edge gateway listens and where it forwards packets."""

    udp_listen_port: int = 9000
    cloud_mqtt_host: str = "mqtt.example.com"
    cloud_mqtt_port: int = 8883
    cloud_mqtt_topic: str = "sewerfog/ingest"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GatewayConfig":
        """Build the settings from ``FOG_EDGE_*`` variables, with defaults for unset ones."""
        env = _environ(environ)
        return cls(
            udp_listen_port=_env_int(env, "FOG_EDGE_UDP_PORT", cls.udp_listen_port),
            cloud_mqtt_host=env.get("FOG_EDGE_CLOUD_MQTT_HOST", cls.cloud_mqtt_host),
            cloud_mqtt_port=_env_int(env, "FOG_EDGE_CLOUD_MQTT_PORT", cls.cloud_mqtt_port),
            cloud_mqtt_topic=env.get("FOG_EDGE_CLOUD_MQTT_TOPIC", cls.cloud_mqtt_topic),
        )


@dataclass(frozen=True)
class NodeConfig:
    """Identity, broker and sampling period of a manhole node."""

    node_id: str = "PHX-FOG-REACH-01"
    mqtt_broker_host: str = "192.168.1.10"
    mqtt_broker_port: int = 1883
    mqtt_topic: str = "sewerfog/nodes"
    sample_period_seconds: float = 60.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "NodeConfig":
        """Build the settings from ``FOG_NODE_*``, ``FOG_MQTT_*`` and ``FOG_SAMPLE_PERIOD_S``."""
        env = _environ(environ)
        return cls(
            node_id=env.get("FOG_NODE_ID", cls.node_id),
            mqtt_broker_host=env.get("FOG_MQTT_HOST", cls.mqtt_broker_host),
            mqtt_broker_port=_env_int(env, "FOG_MQTT_PORT", cls.mqtt_broker_port),
            mqtt_topic=env.get("FOG_MQTT_TOPIC", cls.mqtt_topic),
            sample_period_seconds=_env_float(
                env, "FOG_SAMPLE_PERIOD_S", cls.sample_period_seconds
            ),
        )


@dataclass(frozen=True)
class ChatConfig:
    """Address the chat webhook server listens on."""

    listen_address: str = "0.0.0.0"
    listen_port: int = 9090

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ChatConfig":
        """Build the settings from ``FOG_CHAT_ADDR`` and ``FOG_CHAT_PORT``."""
        env = _environ(environ)
        return cls(
            listen_address=env.get("FOG_CHAT_ADDR", cls.listen_address),
            listen_port=_env_int(env, "FOG_CHAT_PORT", cls.listen_port),
        )