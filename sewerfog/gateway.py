"""Edge gateway: buffers node packets received over UDP and forwards them upstream."""

from __future__ import annotations

import socket
import sys
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import TextIO

from .config import GatewayConfig
from .packet import SensorPacket

BUFFER_CAPACITY = 2048
_IDLE_SLEEP_S = 0.2
_MAX_DATAGRAM = 65535


class BufferStore:
    """Thread-safe FIFO of packets that keeps only the newest ``capacity`` entries."""

    def __init__(self, capacity: int = BUFFER_CAPACITY) -> None:
        self._queue: deque[SensorPacket] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def push(self, packet: SensorPacket) -> None:
        """Queue a packet, dropping the oldest one when full."""
        with self._lock:
            self._queue.append(packet)

    def pop(self) -> SensorPacket | None:
        """Remove and return the oldest packet, or ``None`` if the buffer is empty."""
        with self._lock:
            return self._queue.popleft() if self._queue else None


@dataclass(frozen=True)
class NodeInfo:
    """When a node was last heard from."""

    node_id: str
    last_seen_unix_s: int


class NodeRegistry:
    """Latest contact information for every known node."""

    def __init__(self) -> None:
        self._nodes: dict[str, NodeInfo] = {}
        self._lock = threading.Lock()

    def update(self, info: NodeInfo) -> None:
        """Record or replace the entry for ``info.node_id``."""
        with self._lock:
            self._nodes[info.node_id] = info

    def snapshot(self) -> dict[str, NodeInfo]:
        """Return a copy of the registry keyed by node id."""
        with self._lock:
            return dict(self._nodes)


class CloudForwarder:
    """Sends buffered packets to the cloud MQTT topic."""

    def __init__(self, host: str, port: int, topic: str, out: TextIO | None = None) -> None:
        self.host = host
        self.port = port
        self.topic = topic
        self._out = out

    def _print(self, message: str) -> None:
        print(message, file=self._out or sys.stdout)

    def connect(self) -> bool:
        """Open the connection to the broker."""
        self._print(f"Connecting gateway to cloud MQTT {self.host}:{self.port}")
        return True

    def send(self, packet: SensorPacket) -> bool:
        """Forward one packet to the configured topic."""
        self._print(f"Forwarding packet for node {packet.node_id} to topic {self.topic}")
        return True


class IngressServer:
    """Receives JSON sensor packets on a UDP port and pushes them into a buffer."""

    def __init__(
        self,
        listen_port: int,
        buffer: BufferStore,
        registry: NodeRegistry | None = None,
        *,
        host: str = "0.0.0.0",
        poll_interval: float = 0.5,
        out: TextIO | None = None,
    ) -> None:
        self._port = listen_port
        self._host = host
        self._buffer = buffer
        self._registry = registry
        self._poll_interval = poll_interval
        self._out = out
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._sock: socket.socket | None = None
        self.rejected = 0

    @property
    def port(self) -> int:
        """The bound UDP port while running, otherwise the configured one."""
        if self._sock is not None:
            return self._sock.getsockname()[1]
        return self._port

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Bind the socket and start receiving in a background thread."""
        if self._thread is not None:
            raise RuntimeError("ingress server is already running")
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((self._host, self._port))
        except OSError:
            sock.close()
            raise
        sock.settimeout(self._poll_interval)
        self._sock = sock
        self._stop.clear()
        print(f"IngressServer listening on UDP port {self.port}", file=self._out or sys.stdout)
        self._thread = threading.Thread(target=self._serve, name="ingress", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop receiving and release the socket; safe to call more than once."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def __enter__(self) -> "IngressServer":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _serve(self) -> None:
        sock = self._sock
        assert sock is not None
        while not self._stop.is_set():
            try:
                data, _addr = sock.recvfrom(_MAX_DATAGRAM)
            except socket.timeout:
                continue
            except OSError:
                break
            self._handle(data)

    def _handle(self, data: bytes) -> None:
        try:
            packet = SensorPacket.from_json(data)
        except (ValueError, KeyError, TypeError):
            self.rejected += 1
            return
        self._buffer.push(packet)
        if self._registry is not None:
            self._registry.update(NodeInfo(packet.node_id, int(time.time())))


def _drain(buffer: BufferStore, forwarder: CloudForwarder) -> int:
    """Forward every buffered packet; return how many were sent."""
    sent = 0
    while (packet := buffer.pop()) is not None:
        forwarder.send(packet)
        sent += 1
    return sent


def main(argv: list[str] | None = None) -> int:
    """Run the gateway until interrupted."""
    cfg = GatewayConfig.from_env()
    buffer = BufferStore()
    registry = NodeRegistry()
    ingress = IngressServer(cfg.udp_listen_port, buffer, registry)
    ingress.start()
    forwarder = CloudForwarder(cfg.cloud_mqtt_host, cfg.cloud_mqtt_port, cfg.cloud_mqtt_topic)
    forwarder.connect()
    try:
        while True:
            if not _drain(buffer, forwarder):
                time.sleep(_IDLE_SLEEP_S)
    except KeyboardInterrupt:
        return 0
    finally:
        ingress.stop()


if __name__ == "__main__":
    sys.exit(main())