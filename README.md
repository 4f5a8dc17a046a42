# sewerfog

Building blocks for a sewer fats, oils and grease (FOG) monitoring network.
It includes the JSON sensor packet sent by manhole nodes and the FOG impact
("Karma") model. It also has a linear overflow-risk predictor and
plain-language reach summaries. Small runnable pieces cover a node, an edge
gateway and a chat webhook. Only the standard library is used.

## Install

```
pip install .
pip install ".[test]"   # adds pytest
```

## Modules

### `sewerfog.packet`

`SensorPacket` is a frozen dataclass. Its fields are `node_id`,
`timestamp_s`, `flow_m3_per_s`, `fog_mg_per_l`, `temperature_c`,
`battery_v` and `quality_flags`. The `quality_flags` field must fit in 32
unsigned bits, otherwise `ValueError` is raised.

- `to_dict()` and `to_json()` use these wire keys: `node_id`,
  `timestamp_s`, `flow_m3s`, `fog_mgL`, `temperature_C`, `battery_V` and
  `quality_flags`. `to_json()` gives compact JSON.
- `to_mqtt_payload()` returns the JSON as UTF-8 bytes.
- `SensorPacket.from_json(text_or_bytes)` raises these errors:
  - `json.JSONDecodeError` for malformed JSON.
  - `KeyError` for a missing field.
  - `TypeError` for a wrongly typed field or a non-object document.

### `sewerfog.impact`

`compute_fog_impact(FogNodeState, FogImpactConfig)` returns a
`FogImpactResult` with the fields `mass_kg`, `normalized_risk` and `karma`.

- Mass: `mass_kg = (Cin - Cout) [mg/L] * 0.001 * Q [m³/s] * dt [s]`.
- Risk: `normalized_risk = (Cin - Cout) / cref`.
- Karma: `karma = hazard_weight * normalized_risk * mass_kg * karma_per_kg`.

If `cref_mg_per_l` is not positive, the function raises `ValueError`. A
non-positive window, flow or concentration drop gives an all-zero result.

### `sewerfog.overflow`

`OverflowPredictor(max_samples=512)` keeps the most recent `LevelSample`s.
Each sample has `t_s`, `level_m` and `capacity_m`.

- `add_sample(sample)` appends a sample.
- `estimate_risk(horizon_s)` returns an `OverflowRisk`. The rise rate is
  taken from the first and last retained samples. From it the predictor
  estimates the time until the level reaches capacity. The probability is
  `(horizon - time_to_crown) / horizon`, clamped to 0–1. It is 1 when the
  level is already at or above capacity.
- `predict(OverflowPredictionConfig(min_samples, horizon_seconds))` returns
  an `OverflowPredictionResult`. It holds the linearly projected level and
  the projection as a fraction of capacity, clamped to 0–1.

### `sewerfog.chat`

`ReachStatus` has the fields `reach_id`, `risk_score`, `daily_karma`,
`delta_karma_24h` and `top_basins`. Two functions turn it into text:

- `make_reach_summary(status)` uses four bands: low, moderate, high and
  very high. The boundaries are 0.2, 0.5 and 0.8.
- `format_chat_summary(status)` uses three bands: LOW, MEDIUM and HIGH. The
  boundaries are 0.4 and 0.8.

### `sewerfog.server`

- `Database(path)` stores samples and impact evaluations in SQLite. The path
  may be a file or `":memory:"`.
  - `connect()` creates the `fog_samples` and `fog_impact` tables.
  - `store_packet`, `store_impact`, `fetch_samples` and `fetch_impacts`
    write and read the data. Inserts do nothing while the database is not
    connected.
  - `close()` closes the connection. The class is also a context manager.
- `FogImpactService(config).evaluate(packet, dt_seconds)` treats the
  packet's FOG as fully removed, with an outflow concentration of zero.
- `IngestController(db, service).ingest_json_packet(text)` does three things:
  1. It parses the packet.
  2. It stores the packet.
  3. It evaluates the impact over a 60 s window, stores it and returns it.
- `QueryController(db).get_reach_summary(reach_id)` returns a JSON string
  with `reachId`, `riskScore` and `dailyKarma`.

### `sewerfog.gateway`

- `BufferStore` is a thread-safe FIFO. By default it keeps the newest 2048
  packets. `pop()` returns `None` when the buffer is empty.
- `NodeRegistry` records `NodeInfo(node_id, last_seen_unix_s)` for each
  node. `snapshot()` returns a copy of the records.
- `IngressServer(port, buffer, registry=None)` receives JSON packets over
  UDP in a background thread.
  - Valid packets are pushed into the buffer, and the registry is updated.
  - Invalid packets are counted in `rejected`.
  - Call `start()` and `stop()`, or use the server as a context manager.
- `CloudForwarder(host, port, topic)` is the upstream side. It has
  `connect()` and `send(packet)`.

### `sewerfog.node`

- `Sensors` has `begin()` and `read_once()`. `read_once()` returns
  `SensorReadings`.
- `make_packet(config, timestamp, readings)` builds a `SensorPacket` from
  the readings.
- `MqttPublisher(host, port)` has `connect()` and `publish(topic, packet)`.

## Configuration

`sewerfog.config` provides `NodeConfig`, `GatewayConfig` and `ChatConfig`.
Each has a `from_env(environ=None)` method, which reads `os.environ` by
default. Numeric values are read from their leading digits. A value with no
leading number reads as 0.

| Variable | Default |
| --- | --- |
| `FOG_NODE_ID` | `PHX-FOG-REACH-01` |
| `FOG_MQTT_HOST` | `192.168.1.10` |
| `FOG_MQTT_PORT` | `1883` |
| `FOG_MQTT_TOPIC` | `sewerfog/nodes` |
| `FOG_SAMPLE_PERIOD_S` | `60.0` |
| `FOG_EDGE_UDP_PORT` | `9000` |
| `FOG_EDGE_CLOUD_MQTT_HOST` | `mqtt.example.com` |
| `FOG_EDGE_CLOUD_MQTT_PORT` | `8883` |
| `FOG_EDGE_CLOUD_MQTT_TOPIC` | `sewerfog/ingest` |
| `FOG_CHAT_ADDR` | `0.0.0.0` |
| `FOG_CHAT_PORT` | `9090` |

## Commands

```
sewerfog-node       # sample the sensors and publish a packet every period
sewerfog-gateway    # receive UDP packets, buffer them and forward them
sewerfog-chat       # announce the chat address and print a sample summary
```

Each command runs until interrupted with Ctrl-C.

## What it does not do

- **No MQTT traffic.** `MqttPublisher` and `CloudForwarder` only print what
  they would connect to or send. The node and gateway commands therefore
  never leave the machine, apart from the gateway's UDP listener.
- **Simulated sensors.** `Sensors.read_once()` returns fixed values.
- **No chat requests.** The chat server does not handle requests. It prints
  one sample summary and then waits.
- **No server command or HTTP API.** `sewerfog.server` is a library only.
- **Fixed reach summaries.** `QueryController.get_reach_summary` returns
  fixed values: `riskScore` is 0.5 and `dailyKarma` is 180.0. It does not
  aggregate stored data.