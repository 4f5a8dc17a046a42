import io
import socket
import threading
import time

import pytest

from sewerfog.gateway import (
    BufferStore,
    CloudForwarder,
    IngressServer,
    NodeInfo,
    NodeRegistry,
)
from sewerfog.packet import SensorPacket


def _packet(node_id="NODE-A", ts=1_700_000_000):
    return SensorPacket(
        node_id=node_id,
        timestamp_s=ts,
        flow_m3_per_s=0.008,
        fog_mg_per_l=200.0,
        temperature_c=25.0,
        battery_v=3.7,
        quality_flags=0,
    )


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        result = predicate()
        if result:
            return result
        time.sleep(0.01)
    return predicate()


def test_buffer_is_fifo():
    buf = BufferStore()
    first, second = _packet("A"), _packet("B")
    buf.push(first)
    buf.push(second)
    assert buf.pop() == first
    assert buf.pop() == second


def test_pop_on_empty_buffer_returns_none():
    assert BufferStore().pop() is None


def test_buffer_keeps_only_newest_2048():
    buf = BufferStore()
    for i in range(2050):
        buf.push(_packet(ts=i))
    assert len(buf) == 2048
    assert buf.pop().timestamp_s == 2
    assert len(buf) == 2047


def test_buffer_is_safe_across_threads():
    buf = BufferStore(capacity=10_000)

    def producer(prefix):
        for i in range(500):
            buf.push(_packet(f"{prefix}", ts=i))

    threads = [threading.Thread(target=producer, args=(p,)) for p in "ABCD"]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    drained = []
    while (pkt := buf.pop()) is not None:
        drained.append(pkt)
    assert len(drained) == 2000
    for prefix in "ABCD":
        stamps = [p.timestamp_s for p in drained if p.node_id == prefix]
        assert stamps == sorted(stamps)


def test_registry_update_replaces_entry():
    reg = NodeRegistry()
    reg.update(NodeInfo("A", 10))
    reg.update(NodeInfo("B", 20))
    reg.update(NodeInfo("A", 30))
    snap = reg.snapshot()
    assert snap == {"A": NodeInfo("A", 30), "B": NodeInfo("B", 20)}


def test_registry_snapshot_is_a_copy():
    reg = NodeRegistry()
    reg.update(NodeInfo("A", 10))
    snap = reg.snapshot()
    snap.clear()
    assert set(reg.snapshot()) == {"A"}


def test_forwarder_connect_and_send_report():
    out = io.StringIO()
    fwd = CloudForwarder("mqtt.example.com", 8883, "sewerfog/ingest", out=out)
    assert fwd.connect() is True
    assert fwd.send(_packet("NODE-A")) is True
    lines = out.getvalue().splitlines()
    assert lines == [
        "Connecting gateway to cloud MQTT mqtt.example.com:8883",
        "Forwarding packet for node NODE-A to topic sewerfog/ingest",
    ]


def test_ingress_receives_packets_over_udp():
    buf = BufferStore()
    reg = NodeRegistry()
    out = io.StringIO()
    packet = _packet("NODE-UDP")
    with IngressServer(0, buf, reg, host="127.0.0.1", poll_interval=0.05, out=out) as server:
        assert server.running
        port = server.port
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as client:
            client.sendto(b"not json", ("127.0.0.1", port))
            client.sendto(packet.to_mqtt_payload(), ("127.0.0.1", port))
        received = _wait_for(buf.pop)
        assert received == packet
        assert _wait_for(lambda: server.rejected == 1)
    assert not server.running
    assert "NODE-UDP" in reg.snapshot()
    assert out.getvalue() == f"IngressServer listening on UDP port {port}\n"


def test_ingress_cannot_start_twice():
    server = IngressServer(0, BufferStore(), host="127.0.0.1", poll_interval=0.05, out=io.StringIO())
    server.start()
    try:
        with pytest.raises(RuntimeError):
            server.start()
    finally:
        server.stop()
    assert not server.running