import io
import json
import sqlite3

import pytest

from sewerfog.impact import FogImpactConfig, FogNodeState, compute_fog_impact
from sewerfog.packet import SensorPacket
from sewerfog.server import (
    INGEST_WINDOW_S,
    Database,
    FogImpactService,
    IngestController,
    QueryController,
)

CONFIG = FogImpactConfig(cref_mg_per_l=100.0, hazard_weight=1.0, karma_per_kg=1.0)


def _packet(node_id="NODE-A", ts=1_700_000_000, fog=200.0, flags=0):
    return SensorPacket(
        node_id=node_id,
        timestamp_s=ts,
        flow_m3_per_s=0.008,
        fog_mg_per_l=fog,
        temperature_c=25.0,
        battery_v=3.7,
        quality_flags=flags,
    )


@pytest.fixture
def db():
    database = Database(":memory:", err=io.StringIO())
    assert database.connect()
    yield database
    database.close()


def test_store_packet_round_trip(db):
    first = _packet("NODE-A", 10, flags=3)
    second = _packet("NODE-B", 20, fog=50.0)
    db.store_packet(first)
    db.store_packet(second)
    assert db.fetch_samples() == [first, second]


def test_store_impact_round_trip(db):
    impact = compute_fog_impact(FogNodeState(200.0, 0.0, 0.008, 60.0), CONFIG)
    db.store_impact("NODE-A", 42, impact)
    assert db.fetch_impacts() == [("NODE-A", 42, impact)]


def test_store_without_connection_is_ignored(tmp_path):
    path = str(tmp_path / "fog.db")
    database = Database(path)
    database.store_packet(_packet())
    assert database.fetch_samples() == []
    assert database.connect()
    assert database.fetch_samples() == []
    database.close()


def test_data_persists_across_connections(tmp_path):
    path = str(tmp_path / "fog.db")
    packet = _packet()
    with Database(path) as database:
        assert database.connect()
        database.store_packet(packet)
    with Database(path) as database:
        assert database.connect()
        assert database.fetch_samples() == [packet]


def test_connect_failure_reports_error(tmp_path):
    err = io.StringIO()
    database = Database(str(tmp_path / "missing" / "fog.db"), err=err)
    assert database.connect() is False
    assert "DB connection failed" in err.getvalue()
    assert database.connected is False


def test_insert_failure_is_reported(tmp_path):
    path = str(tmp_path / "fog.db")
    raw = sqlite3.connect(path)
    raw.execute("CREATE TABLE fog_samples(x INTEGER)")
    raw.commit()
    raw.close()
    err = io.StringIO()
    database = Database(path, err=err)
    assert database.connect()
    database.store_packet(_packet())
    database.close()
    assert "Insert sample failed" in err.getvalue()


def test_close_disconnects(db):
    db.close()
    assert db.connected is False
    db.store_packet(_packet())
    assert db.fetch_samples() == []


def test_evaluate_assumes_zero_outflow():
    packet = _packet(fog=200.0)
    result = FogImpactService(CONFIG).evaluate(packet, 60.0)
    expected = compute_fog_impact(FogNodeState(200.0, 0.0, 0.008, 60.0), CONFIG)
    assert result == expected
    assert result.normalized_risk == pytest.approx(2.0)


def test_evaluate_zero_window_gives_zero_impact():
    result = FogImpactService(CONFIG).evaluate(_packet(), 0.0)
    assert (result.mass_kg, result.normalized_risk, result.karma) == (0.0, 0.0, 0.0)


def test_evaluate_rejects_bad_reference():
    service = FogImpactService(FogImpactConfig(0.0, 1.0, 1.0))
    with pytest.raises(ValueError):
        service.evaluate(_packet(), 60.0)


def test_ingest_stores_packet_and_impact(db):
    out = io.StringIO()
    service = FogImpactService(CONFIG)
    controller = IngestController(db, service, out=out)
    packet = _packet("NODE-C", 123)
    impact = controller.ingest_json_packet(packet.to_json())
    assert db.fetch_samples() == [packet]
    assert db.fetch_impacts() == [("NODE-C", 123, impact)]
    assert impact == service.evaluate(packet, INGEST_WINDOW_S)
    assert out.getvalue().strip() == "Stored packet and impact for node NODE-C"


def test_ingest_accepts_bytes_payload(db):
    controller = IngestController(db, FogImpactService(CONFIG), out=io.StringIO())
    packet = _packet("NODE-D")
    controller.ingest_json_packet(packet.to_mqtt_payload())
    assert db.fetch_samples() == [packet]


def test_ingest_malformed_json_stores_nothing(db):
    controller = IngestController(db, FogImpactService(CONFIG), out=io.StringIO())
    with pytest.raises(json.JSONDecodeError):
        controller.ingest_json_packet("{not json")
    assert db.fetch_samples() == []
    assert db.fetch_impacts() == []


def test_ingest_missing_field_raises(db):
    controller = IngestController(db, FogImpactService(CONFIG), out=io.StringIO())
    data = _packet().to_dict()
    del data["fog_mgL"]
    with pytest.raises(KeyError):
        controller.ingest_json_packet(json.dumps(data))
    assert db.fetch_samples() == []


def test_reach_summary_document(db):
    text = QueryController(db).get_reach_summary("PHX-FOG-REACH-01")
    assert text == '{"reachId":"PHX-FOG-REACH-01","riskScore":0.5,"dailyKarma":180.0}'


def test_reach_summary_escapes_identifier(db):
    reach_id = 'odd "reach" \\ id'
    summary = json.loads(QueryController(db).get_reach_summary(reach_id))
    assert summary["reachId"] == reach_id
    assert summary["riskScore"] == 0.5
    assert summary["dailyKarma"] == 180.0