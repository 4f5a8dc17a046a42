"""Server side: stores node packets, evaluates their FOG impact and answers reach queries."""

from __future__ import annotations

import json
import sqlite3
import sys
from typing import TextIO

from .impact import FogImpactConfig, FogImpactResult, FogNodeState, compute_fog_impact
from .packet import SensorPacket

INGEST_WINDOW_S = 60.0

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS fog_samples(
        node_id TEXT NOT NULL,
        ts INTEGER NOT NULL,
        flow_m3s REAL NOT NULL,
        fog_mgL REAL NOT NULL,
        temperature_C REAL NOT NULL,
        battery_V REAL NOT NULL,
        quality_flags INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS fog_impact(
        node_id TEXT NOT NULL,
        ts INTEGER NOT NULL,
        m_fog_kg REAL NOT NULL,
        normalized_risk REAL NOT NULL,
        karma REAL NOT NULL
    )
    """,
)

_INSERT_SAMPLE = (
    "INSERT INTO fog_samples(node_id, ts, flow_m3s, fog_mgL, temperature_C, battery_V, "
    "quality_flags) VALUES(?, ?, ?, ?, ?, ?, ?)"
)
_INSERT_IMPACT = (
    "INSERT INTO fog_impact(node_id, ts, m_fog_kg, normalized_risk, karma) "
    "VALUES(?, ?, ?, ?, ?)"
)


class Database:
    """Sample and impact store backed by an SQLite database file (or ``:memory:``)."""

    def __init__(self, conn_str: str, *, err: TextIO | None = None) -> None:
        self.conn_str = conn_str
        self._conn: sqlite3.Connection | None = None
        self._err = err

    def _report(self, message: str) -> None:
        print(message, file=self._err or sys.stderr)

    @property
    def connected(self) -> bool:
        return self._conn is not None

    def connect(self) -> bool:
        """Open the database and make sure its tables exist; report and return False on failure."""
        self.close()
        try:
            conn = sqlite3.connect(self.conn_str, check_same_thread=False)
        except sqlite3.Error as exc:
            self._report(f"DB connection failed: {exc}")
            return False
        try:
            with conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
        except sqlite3.Error as exc:
            conn.close()
            self._report(f"DB connection failed: {exc}")
            return False
        self._conn = conn
        return True

    def close(self) -> None:
        """Close the connection if one is open."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _insert(self, sql: str, params: tuple, what: str) -> None:
        if self._conn is None:
            return
        try:
            with self._conn:
                self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            self._report(f"Insert {what} failed: {exc}")

    def store_packet(self, packet: SensorPacket) -> None:
        """Insert one sensor sample; does nothing when not connected."""
        self._insert(
            _INSERT_SAMPLE,
            (
                packet.node_id,
                packet.timestamp_s,
                packet.flow_m3_per_s,
                packet.fog_mg_per_l,
                packet.temperature_c,
                packet.battery_v,
                packet.quality_flags,
            ),
            "sample",
        )

    def store_impact(self, node_id: str, timestamp_s: int, impact: FogImpactResult) -> None:
        """Insert one impact evaluation; does nothing when not connected."""
        self._insert(
            _INSERT_IMPACT,
            (node_id, timestamp_s, impact.mass_kg, impact.normalized_risk, impact.karma),
            "impact",
        )

    def fetch_samples(self) -> list[SensorPacket]:
        """Return the stored samples in insertion order."""
        if self._conn is None:
            return []
        rows = self._conn.execute(
            "SELECT node_id, ts, flow_m3s, fog_mgL, temperature_C, battery_V, quality_flags "
            "FROM fog_samples ORDER BY rowid"
        )
        return [SensorPacket(*row) for row in rows]

    def fetch_impacts(self) -> list[tuple[str, int, FogImpactResult]]:
        """Return the stored impact evaluations in insertion order."""
        if self._conn is None:
            return []
        rows = self._conn.execute(
            "SELECT node_id, ts, m_fog_kg, normalized_risk, karma FROM fog_impact ORDER BY rowid"
        )
        return [
            (node_id, ts, FogImpactResult(mass_kg=m, normalized_risk=r, karma=k))
            for node_id, ts, m, r, k in rows
        ]


class FogImpactService:
    """Evaluates the FOG impact of incoming packets with a fixed configuration."""

    def __init__(self, config: FogImpactConfig) -> None:
        self.config = config

    def evaluate(self, packet: SensorPacket, dt_seconds: float) -> FogImpactResult:
        """Treat the packet's FOG as removed entirely (zero outflow) over ``dt_seconds``."""
        state = FogNodeState(
            cin_mg_per_l=packet.fog_mg_per_l,
            cout_mg_per_l=0.0,
            flow_m3_per_s=packet.flow_m3_per_s,
            dt_seconds=dt_seconds,
        )
        return compute_fog_impact(state, self.config)


class IngestController:
    """Parses JSON packets, stores them and stores their impact."""

    def __init__(
        self, db: Database, impact_service: FogImpactService, *, out: TextIO | None = None
    ) -> None:
        self._db = db
        self._impact_service = impact_service
        self._out = out

    def ingest_json_packet(self, text: str | bytes) -> FogImpactResult:
        """Store a packet given as JSON and its impact over the ingest window.

        Parsing errors from ``SensorPacket.from_json`` propagate unchanged.
        """
        packet = SensorPacket.from_json(text)
        self._db.store_packet(packet)
        impact = self._impact_service.evaluate(packet, INGEST_WINDOW_S)
        self._db.store_impact(packet.node_id, packet.timestamp_s, impact)
        print(f"Stored packet and impact for node {packet.node_id}", file=self._out or sys.stdout)
        return impact


class QueryController:
    """Answers summary queries about sewer reaches."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def get_reach_summary(self, reach_id: str) -> str:
        """Return the reach's risk score and daily Karma as a compact JSON document."""
        summary = {"reachId": reach_id, "riskScore": 0.5, "dailyKarma": 180.0}
        return json.dumps(summary, separators=(",", ":"))