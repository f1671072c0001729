"""Tests for rendering declared resources into supervisor request documents."""

import json

import pytest

from core.errors import ResponseDecodeError
from provider.schemas.resource import ResourceConfig, TuningConfig
from provider.spec_builder import (
    build_data_schema,
    build_io_config,
    build_spec,
    build_tuning_config,
    extract_status,
    render_spec_json,
    spec_fingerprint,
)


def _make_config(**overrides):
    declaration = {
        "datasource": "test-datasource",
        "timestamp_spec": {"column": "__time", "format": "iso"},
        "topic": "test-topic",
        "input_format": {"type": "json"},
        "consumer_properties": {"bootstrap.servers": "localhost:9092"},
    }
    declaration.update(overrides)
    return ResourceConfig.model_validate(declaration)


# ---------------------------------------------------------------------------
# Whole document
# ---------------------------------------------------------------------------


class TestBuildSpec:
    def test_basic_spec(self, valid_config):
        assert build_spec(valid_config) == {
            "type": "kafka",
            "spec": {
                "dataSchema": {
                    "dataSource": "test-datasource",
                    "timestampSpec": {"column": "__time", "format": "iso"},
                },
                "ioConfig": {
                    "topic": "test-topic",
                    "inputFormat": {"type": "json"},
                    "consumerProperties": {"bootstrap.servers": "localhost:9092"},
                    "taskCount": 1,
                    "replicas": 1,
                    "taskDuration": "PT1H",
                    "useEarliestOffset": False,
                    "completionTimeout": "PT30M",
                },
            },
        }

    def test_advanced_spec_with_dimensions_and_metrics(self, advanced_config):
        assert build_spec(advanced_config) == {
            "type": "kafka",
            "spec": {
                "dataSchema": {
                    "dataSource": "advanced-datasource",
                    "timestampSpec": {
                        "column": "timestamp",
                        "format": "auto",
                        "missingValue": "2010-01-01T00:00:00Z",
                    },
                    "dimensionsSpec": {
                        "dimensions": [
                            {"name": "user_id", "type": "string"},
                            {
                                "name": "categories",
                                "type": "string",
                                "multiValueHandling": "sorted_array",
                            },
                        ],
                        "dimensionExclusions": ["__time", "kafka.timestamp"],
                    },
                    "metricsSpec": [
                        {"name": "count", "type": "count"},
                        {"name": "revenue", "type": "doubleSum", "fieldName": "price"},
                    ],
                },
                "ioConfig": {
                    "topicPattern": "events-.*",
                    "inputFormat": {"type": "json"},
                    "consumerProperties": {
                        "bootstrap.servers": "kafka1:9092,kafka2:9092",
                        "security.protocol": "SASL_SSL",
                    },
                    "taskCount": 2,
                    "replicas": 1,
                    "taskDuration": "PT2H",
                    "useEarliestOffset": True,
                    "completionTimeout": "PT1H",
                },
                "context": {"priority": "75"},
            },
        }

    def test_orders_scenario_without_timestamp_or_input_format(self, orders_config):
        body = json.dumps(build_spec(orders_config), separators=(",", ":"))
        assert body == (
            '{"type":"kafka","spec":{"dataSchema":{"dataSource":"orders"},'
            '"ioConfig":{"topic":"orders-topic",'
            '"consumerProperties":{"bootstrap.servers":"kafka:9092"},'
            '"taskCount":1,"replicas":1,"taskDuration":"PT1H",'
            '"useEarliestOffset":false,"completionTimeout":"PT30M"}}}'
        )

    def test_is_idempotent(self, advanced_config):
        first = json.dumps(build_spec(advanced_config))
        second = json.dumps(build_spec(advanced_config))
        assert first == second

    def test_output_does_not_alias_config(self, valid_config):
        spec = build_spec(valid_config)
        spec["spec"]["ioConfig"]["consumerProperties"]["group.id"] = "mutated"
        assert "group.id" not in valid_config.consumer_properties

    def test_suspended_emitted_only_when_true(self):
        assert "suspended" not in build_spec(_make_config(suspended=False))["spec"]
        assert build_spec(_make_config(suspended=True))["spec"]["suspended"] is True

    def test_context_emitted_only_when_non_empty(self):
        assert "context" not in build_spec(_make_config(context={}))["spec"]
        spec = build_spec(_make_config(context={"priority": "50"}))["spec"]
        assert spec["context"] == {"priority": "50"}

    def test_tuning_config_absent_unless_declared(self, valid_config):
        assert "tuningConfig" not in build_spec(valid_config)["spec"]

    def test_render_spec_json_matches_build(self, valid_config):
        assert json.loads(render_spec_json(valid_config)) == build_spec(valid_config)


# ---------------------------------------------------------------------------
# dataSchema
# ---------------------------------------------------------------------------


class TestBuildDataSchema:
    def test_missing_value_omitted_when_empty(self):
        schema = build_data_schema(
            _make_config(timestamp_spec={"column": "ts", "format": "millis", "missing_value": ""})
        )
        assert schema["timestampSpec"] == {"column": "ts", "format": "millis"}

    def test_timestamp_format_defaults_to_auto(self):
        schema = build_data_schema(_make_config(timestamp_spec={"column": "ts"}))
        assert schema["timestampSpec"] == {"column": "ts", "format": "auto"}

    def test_empty_dimensions_spec_is_dropped(self):
        schema = build_data_schema(_make_config(dimensions_spec={}))
        assert "dimensionsSpec" not in schema

    def test_dimension_type_defaults_to_string(self):
        schema = build_data_schema(_make_config(dimensions_spec={"dimensions": [{"name": "country"}]}))
        assert schema["dimensionsSpec"] == {"dimensions": [{"name": "country", "type": "string"}]}

    def test_spatial_dimensions_rendered(self):
        schema = build_data_schema(
            _make_config(
                dimensions_spec={
                    "spatial_dimensions": [{"dim_name": "coordinates", "dims": ["lat", "long"]}]
                }
            )
        )
        assert schema["dimensionsSpec"] == {
            "spatialDimensions": [{"dimName": "coordinates", "dims": ["lat", "long"]}]
        }

    def test_dimension_exclusions_deduplicated_in_order(self):
        schema = build_data_schema(
            _make_config(dimensions_spec={"dimension_exclusions": ["b", "a", "b", "c", "a"]})
        )
        assert schema["dimensionsSpec"]["dimensionExclusions"] == ["b", "a", "c"]

    def test_metrics_preserve_declaration_order(self):
        names = [f"m{i}" for i in range(10)]
        metrics = [{"name": name, "type": "longSum", "field_name": name} for name in reversed(names)]
        schema = build_data_schema(_make_config(metrics_spec=metrics))
        assert [m["name"] for m in schema["metricsSpec"]] == list(reversed(names))

    def test_dimensions_preserve_declaration_order(self):
        dims = [{"name": name} for name in ("z", "a", "m")]
        schema = build_data_schema(_make_config(dimensions_spec={"dimensions": dims}))
        assert [d["name"] for d in schema["dimensionsSpec"]["dimensions"]] == ["z", "a", "m"]

    def test_empty_metrics_spec_is_omitted(self):
        assert "metricsSpec" not in build_data_schema(_make_config(metrics_spec=[]))

    def test_granularity_spec_always_has_all_four_fields(self):
        schema = build_data_schema(_make_config(granularity_spec={}))
        assert schema["granularitySpec"] == {
            "type": "uniform",
            "segmentGranularity": "HOUR",
            "queryGranularity": "NONE",
            "rollup": True,
        }

    def test_granularity_rollup_false_is_kept(self):
        schema = build_data_schema(_make_config(granularity_spec={"rollup": False}))
        assert schema["granularitySpec"]["rollup"] is False


# ---------------------------------------------------------------------------
# ioConfig
# ---------------------------------------------------------------------------


class TestBuildIoConfig:
    def test_flat_spec_always_has_use_field_discovery(self):
        io_config = build_io_config(
            _make_config(input_format={"type": "json", "flat_spec": {"use_field_discovery": False}})
        )
        assert io_config["inputFormat"] == {
            "type": "json",
            "flatSpec": {"useFieldDiscovery": False},
        }

    def test_flat_spec_delimiter_and_columns(self):
        io_config = build_io_config(
            _make_config(
                input_format={
                    "type": "tsv",
                    "flat_spec": {"delimiter": "\t", "columns": ["ts", "user", "value"]},
                }
            )
        )
        assert io_config["inputFormat"]["flatSpec"] == {
            "useFieldDiscovery": True,
            "delimiter": "\t",
            "columns": ["ts", "user", "value"],
        }

    def test_idle_config_always_has_enabled(self):
        io_config = build_io_config(_make_config(idle_config={}))
        assert io_config["idleConfig"] == {"enabled": False}

    def test_idle_config_inactive_after_millis(self):
        io_config = build_io_config(
            _make_config(idle_config={"enabled": True, "inactive_after_millis": 600000})
        )
        assert io_config["idleConfig"] == {"enabled": True, "inactiveAfterMillis": 600000}

    def test_required_io_fields_always_emitted(self):
        io_config = build_io_config(_make_config())
        for key in ("taskCount", "replicas", "taskDuration", "useEarliestOffset", "completionTimeout"):
            assert key in io_config

    def test_topic_pattern_without_topic(self):
        io_config = build_io_config(_make_config(topic=None, topic_pattern="logs-.*"))
        assert io_config["topicPattern"] == "logs-.*"
        assert "topic" not in io_config


# ---------------------------------------------------------------------------
# tuningConfig
# ---------------------------------------------------------------------------


class TestBuildTuningConfig:
    def test_none_when_not_declared(self, valid_config):
        assert build_tuning_config(valid_config) is None

    def test_empty_block_has_only_type(self):
        assert build_tuning_config(_make_config(tuning_config={})) == {"type": "kafka"}

    def test_every_knob_renamed(self):
        tuning = build_tuning_config(
            _make_config(
                tuning_config={
                    "max_rows_per_segment": 5000000,
                    "max_rows_in_memory": 150000,
                    "max_bytes_in_memory": 1000000,
                    "skip_bytes_in_memory_overhead_check": True,
                    "max_pending_persists": 2,
                    "intermediate_persist_period": "PT10M",
                    "max_parse_exceptions": 10,
                    "max_saved_parse_exceptions": 5,
                    "log_parse_exceptions": True,
                    "reset_offset_automatically": True,
                    "worker_threads": 4,
                    "chat_threads": 2,
                    "chat_retries": 8,
                    "http_timeout": "PT10S",
                    "shutdown_timeout": "PT80S",
                    "segment_write_out_medium_factory": {"type": "offHeapMemory"},
                    "index_spec": {
                        "bitmap": {"type": "roaring"},
                        "dimension_compression": "lz4",
                        "metric_compression": "zstd",
                    },
                }
            )
        )
        assert tuning == {
            "type": "kafka",
            "maxRowsPerSegment": 5000000,
            "maxRowsInMemory": 150000,
            "maxBytesInMemory": 1000000,
            "skipBytesInMemoryOverheadCheck": True,
            "maxPendingPersists": 2,
            "intermediatePersistPeriod": "PT10M",
            "maxParseExceptions": 10,
            "maxSavedParseExceptions": 5,
            "logParseExceptions": True,
            "resetOffsetAutomatically": True,
            "workerThreads": 4,
            "chatThreads": 2,
            "chatRetries": 8,
            "httpTimeout": "PT10S",
            "shutdownTimeout": "PT80S",
            "indexSpec": {
                "bitmap": {"type": "roaring"},
                "dimensionCompression": "lz4",
                "metricCompression": "zstd",
            },
            "segmentWriteOutMediumFactory": {"type": "offHeapMemory"},
        }

    def test_index_spec_defaults_fill_compression(self):
        tuning = build_tuning_config(_make_config(tuning_config={"index_spec": {}}))
        assert tuning["indexSpec"] == {"dimensionCompression": "lz4", "metricCompression": "lz4"}

    def test_index_spec_dropped_when_empty(self):
        tuning = build_tuning_config(
            _make_config(
                tuning_config={
                    "index_spec": {"dimension_compression": "", "metric_compression": ""}
                }
            )
        )
        assert tuning == {"type": "kafka"}


# ---------------------------------------------------------------------------
# Default suppression
# ---------------------------------------------------------------------------


class TestDefaultSuppression:
    def test_unset_optional_fields_never_appear(self, valid_config):
        rendered = render_spec_json(valid_config)
        for key in (
            "missingValue",
            "dimensionsSpec",
            "metricsSpec",
            "granularitySpec",
            "topicPattern",
            "flatSpec",
            "idleConfig",
            "tuningConfig",
            "context",
            "suspended",
        ):
            assert f'"{key}"' not in rendered

    @pytest.mark.parametrize(
        "knob",
        [
            "max_rows_per_segment",
            "max_rows_in_memory",
            "max_bytes_in_memory",
            "max_pending_persists",
            "max_parse_exceptions",
            "max_saved_parse_exceptions",
            "worker_threads",
            "chat_threads",
            "chat_retries",
        ],
    )
    def test_zero_valued_knob_is_indistinguishable_from_unset(self, knob):
        # Lossy on purpose: zero cannot be sent for these knobs
        zero = build_tuning_config(_make_config(tuning_config={knob: 0}))
        unset = build_tuning_config(_make_config(tuning_config={}))
        assert zero == unset == {"type": "kafka"}

    @pytest.mark.parametrize(
        "knob",
        [
            "skip_bytes_in_memory_overhead_check",
            "log_parse_exceptions",
            "reset_offset_automatically",
        ],
    )
    def test_false_boolean_knob_is_omitted(self, knob):
        assert build_tuning_config(_make_config(tuning_config={knob: False})) == {"type": "kafka"}

    def test_zero_inactive_after_millis_is_omitted(self):
        io_config = build_io_config(
            _make_config(idle_config={"enabled": True, "inactive_after_millis": 0})
        )
        assert io_config["idleConfig"] == {"enabled": True}

    def test_empty_strings_are_omitted(self):
        spec = build_spec(
            _make_config(
                dimensions_spec={"dimensions": [{"name": "d", "multi_value_handling": ""}]},
                metrics_spec=[{"name": "count", "type": "count", "field_name": ""}],
                tuning_config={"intermediate_persist_period": "", "http_timeout": ""},
            )
        )
        data_schema = spec["spec"]["dataSchema"]
        assert data_schema["dimensionsSpec"]["dimensions"] == [{"name": "d", "type": "string"}]
        assert data_schema["metricsSpec"] == [{"name": "count", "type": "count"}]
        assert spec["spec"]["tuningConfig"] == {"type": "kafka"}

    @pytest.mark.parametrize(
        "overrides,parent,key,emitted",
        [
            ({"task_count": 0}, ("ioConfig",), "taskCount", True),
            ({"replicas": 0}, ("ioConfig",), "replicas", True),
            ({"task_duration": ""}, ("ioConfig",), "taskDuration", True),
            ({"completion_timeout": ""}, ("ioConfig",), "completionTimeout", True),
            ({"use_earliest_offset": False}, ("ioConfig",), "useEarliestOffset", True),
            ({"topic": ""}, ("ioConfig",), "topic", False),
            ({"consumer_properties": {}}, ("ioConfig",), "consumerProperties", False),
            (
                {"input_format": {"type": "csv", "flat_spec": {"delimiter": ""}}},
                ("ioConfig", "inputFormat", "flatSpec"),
                "delimiter",
                False,
            ),
            (
                {"input_format": {"type": "csv", "flat_spec": {"columns": []}}},
                ("ioConfig", "inputFormat", "flatSpec"),
                "columns",
                False,
            ),
            (
                {"dimensions_spec": {"dimensions": [{"name": "d"}], "dimension_exclusions": []}},
                ("dataSchema", "dimensionsSpec"),
                "dimensionExclusions",
                False,
            ),
            (
                {"dimensions_spec": {"dimensions": [{"name": "d"}], "spatial_dimensions": []}},
                ("dataSchema", "dimensionsSpec"),
                "spatialDimensions",
                False,
            ),
            (
                {"tuning_config": {"index_spec": {"bitmap": {}}}},
                ("tuningConfig", "indexSpec"),
                "bitmap",
                False,
            ),
            (
                {"tuning_config": {"segment_write_out_medium_factory": {}}},
                ("tuningConfig",),
                "segmentWriteOutMediumFactory",
                False,
            ),
        ],
    )
    def test_zero_value_presence(self, overrides, parent, key, emitted):
        block = build_spec(_make_config(**overrides))["spec"]
        for name in parent:
            block = block[name]
        assert (key in block) is emitted
        if emitted:
            assert block[key] == next(iter(overrides.values()))


# ---------------------------------------------------------------------------
# Fingerprint
# ---------------------------------------------------------------------------


class TestSpecFingerprint:
    def test_stable_for_equal_configs(self, advanced_config):
        copy = ResourceConfig.model_validate(advanced_config.model_dump())
        assert spec_fingerprint(advanced_config) == spec_fingerprint(copy)

    def test_ignores_suspended(self):
        assert spec_fingerprint(_make_config(suspended=True)) == spec_fingerprint(
            _make_config(suspended=False)
        )

    def test_changes_with_rendered_fields(self):
        assert spec_fingerprint(_make_config(task_count=1)) != spec_fingerprint(
            _make_config(task_count=2)
        )

    def test_unchanged_when_only_suppressed_zero_changes(self):
        unset = _make_config(tuning_config=TuningConfig().model_dump())
        zero = _make_config(tuning_config={"chat_retries": 0})
        assert spec_fingerprint(unset) == spec_fingerprint(zero)


# ---------------------------------------------------------------------------
# Status extraction
# ---------------------------------------------------------------------------


class TestExtractStatus:
    def test_top_level_fields(self):
        status = extract_status({"id": "orders-supervisor", "state": "RUNNING"})
        assert status.id == "orders-supervisor"
        assert status.state == "RUNNING"
        assert status.detailed_state is None

    def test_nested_payload_fields(self):
        status = extract_status(
            {
                "id": "events",
                "payload": {
                    "state": "SUSPENDED",
                    "detailedState": "SUSPENDED",
                    "healthy": True,
                    "suspended": True,
                },
            }
        )
        assert status.state == "SUSPENDED"
        assert status.detailed_state == "SUSPENDED"
        assert status.healthy is True
        assert status.suspended is True

    def test_falls_back_to_requested_id(self):
        status = extract_status({"payload": {"state": "PENDING"}}, supervisor_id="orders")
        assert status.id == "orders"
        assert status.state == "PENDING"

    def test_missing_state_is_unknown(self):
        assert extract_status({"id": "orders"}).state == "UNKNOWN"

    def test_raises_without_id(self):
        with pytest.raises(ResponseDecodeError, match="no id"):
            extract_status({"state": "RUNNING"})

    def test_raises_on_non_object(self):
        with pytest.raises(ResponseDecodeError, match="JSON object"):
            extract_status(["RUNNING"])
