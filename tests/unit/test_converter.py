"""Tests for the schema-resolving Avro converter."""

import json
from unittest.mock import Mock

import pytest

from apps.converter.src.core.bootstrap import build_converter
from apps.converter.src.core.config import ConverterSettings
from apps.converter.src.data.keys import KEY_SCHEMA, build_key
from apps.converter.src.data.translator import AvroTranslator
from apps.converter.src.domain.errors import (
    ConfigurationError,
    ConverterNotReadyError,
    PayloadDecodeError,
    SchemaResolutionError,
    SchemaTranslationError,
    UnknownSourceError,
)
from apps.converter.src.domain.schemas import parse_avro_schema
from apps.converter.src.service import converter as converter_module
from apps.converter.src.service.converter import UNKNOWN_SOURCE_LABEL, AvroConverter, ConverterState
from libs.manifest import Manifest
from libs.models.connect import ConnectField, ConnectSchema, SchemaType

TOPIC = "topicA"
SOURCE = "somesource"


@pytest.fixture
def converter():
    return AvroConverter(manifest=Manifest(version="1.2.3"))


class TestLifecycle:
    """Test the UNINITIALIZED → READY lifecycle."""

    def test_starts_uninitialized(self, converter):
        assert converter.state is ConverterState.UNINITIALIZED

    def test_convert_before_initialize(self, converter):
        with pytest.raises(ConverterNotReadyError):
            converter.convert(TOPIC, SOURCE, "1", b"\x00")

    def test_initialize_makes_ready(self, converter, local_config, transaction_schema):
        converter.initialize(local_config(SOURCE, transaction_schema))

        assert converter.state is ConverterState.READY
        assert converter.schema_table.identifiers() == [SOURCE]

    def test_bad_configuration_never_reaches_ready(self, converter):
        with pytest.raises(ConfigurationError):
            converter.initialize({})
        assert converter.state is ConverterState.UNINITIALIZED

    def test_missing_schema_file(self, converter, tmp_path):
        with pytest.raises(SchemaResolutionError):
            converter.initialize({"connect.source.converter.avro.schemas": f"{SOURCE}={tmp_path / 'nope.avsc'}"})
        assert converter.state is ConverterState.UNINITIALIZED

    def test_untranslatable_schema_fails_initialization(self, converter, local_config):
        recursive = {"type": "record", "name": "Node", "fields": [{"name": "next", "type": ["null", "Node"]}]}

        with pytest.raises(SchemaTranslationError):
            converter.initialize(local_config(SOURCE, recursive))
        assert converter.state is ConverterState.UNINITIALIZED


class TestNullPayloads:
    """Null payloads are tombstones and bypass decoding."""

    def test_handle_null_payloads(self, converter, local_config):
        converter.initialize(local_config(SOURCE, '"string"'))

        record = converter.convert(TOPIC, SOURCE, "100", None)

        assert record.topic == TOPIC
        assert record.key is None
        assert record.key_schema is None
        assert record.value is None
        assert record.value_schema is None

    def test_null_payload_for_unconfigured_source(self, converter, local_config):
        converter.initialize(local_config(SOURCE, '"string"'))

        record = converter.convert(TOPIC, "no-such-source", "100", None)

        assert record.is_tombstone
        assert record.topic == TOPIC


class TestMetricLabels:
    """Metric attributes only carry configured source identifiers."""

    @pytest.fixture
    def instruments(self, monkeypatch):
        mocks = (Mock(), Mock(), Mock(), Mock())
        monkeypatch.setattr(converter_module, "get_converter_instruments", lambda: mocks)
        return mocks

    def test_tombstones_for_unconfigured_sources_share_one_label(self, instruments, local_config):
        _, tombstones, _, _ = instruments
        converter = AvroConverter()
        converter.initialize(local_config(SOURCE, '"string"'))

        converter.convert(TOPIC, SOURCE, "1", None)
        converter.convert(TOPIC, "unregistered-1", "2", None)
        converter.convert(TOPIC, "unregistered-2", "3", None)

        labels = [c.args[1]["source"] for c in tombstones.add.call_args_list]
        assert labels == [SOURCE, UNKNOWN_SOURCE_LABEL, UNKNOWN_SOURCE_LABEL]

    def test_unknown_source_failures_use_shared_label(self, instruments, local_config, transaction_schema, transaction, encode):
        _, _, failures, _ = instruments
        converter = AvroConverter()
        converter.initialize(local_config(SOURCE, transaction_schema))

        with pytest.raises(UnknownSourceError):
            converter.convert(TOPIC, "no-such-source", "1", encode(transaction_schema, transaction))

        failures.add.assert_called_once_with(1, {"source": UNKNOWN_SOURCE_LABEL, "error": "UnknownSourceError"})


class TestConvert:
    """Test decoding, translation and key building through the converter."""

    def test_orders_scenario(self, converter, local_config, order_schema, encode):
        converter.initialize(local_config("orders", order_schema))

        record = converter.convert("t", "orders", "100", encode(order_schema, {"id": "A1", "qty": 3}))

        assert record.topic == "t"
        assert record.value.to_dict() == {"id": "A1", "qty": 3}
        assert record.value_schema == ConnectSchema(
            type=SchemaType.STRUCT,
            name="Order",
            fields=(
                ConnectField(name="id", index=0, field_schema=ConnectSchema(type=SchemaType.STRING)),
                ConnectField(name="qty", index=1, field_schema=ConnectSchema(type=SchemaType.INT32)),
            ),
        )
        assert record.key.to_dict() == {"identifier": "orders", "sourceId": "100"}
        assert record.key_schema == KEY_SCHEMA

    def test_handle_avro_records(self, converter, local_config, transaction_schema, transaction, encode):
        converter.initialize(local_config(SOURCE, transaction_schema))

        record = converter.convert(TOPIC, SOURCE, "1001", encode(transaction_schema, transaction))

        expected_schema = parse_avro_schema(json.dumps(transaction_schema))
        translator = AvroTranslator()
        assert record.key == build_key(SOURCE, "1001")[1]
        assert record.key_schema == KEY_SCHEMA
        assert record.value_schema == translator.to_connect_schema(expected_schema)
        assert record.value == translator.to_connect_data(expected_schema, transaction)

    def test_support_schema_registry(
        self, registry_backend, registry_client, registry_config, transaction_schema, transaction, encode
    ):
        backend = registry_backend(transaction_schema)
        converter = AvroConverter(registry_client=registry_client(backend))
        converter.initialize(registry_config(f"{SOURCE}=Transaction"))

        record = converter.convert(TOPIC, SOURCE, "1001", encode(transaction_schema, transaction))

        assert record.value.to_dict() == transaction
        assert record.key.to_dict() == {"identifier": SOURCE, "sourceId": "1001"}
        backend.get_latest_version.assert_called_once()

    def test_lazy_registry_errors_surface_per_call(
        self, registry_backend, registry_client, registry_config, encode, transaction_schema, transaction
    ):
        backend = registry_backend(status_code=500, message="boom")
        converter = AvroConverter(registry_client=registry_client(backend))
        converter.initialize(registry_config(f"{SOURCE}=Transaction", **{"schema.registry.lazy": "true"}))

        assert converter.state is ConverterState.READY
        with pytest.raises(SchemaResolutionError):
            converter.convert(TOPIC, SOURCE, "1001", encode(transaction_schema, transaction))

    def test_throws_if_it_cannot_parse_the_payload(self, converter, local_config, transaction_schema, transaction, encode):
        converter.initialize(local_config(SOURCE, transaction_schema))
        tampered = bytes((b + 1) % 255 for b in encode(transaction_schema, transaction))

        with pytest.raises(PayloadDecodeError):
            converter.convert(TOPIC, SOURCE, "1001", tampered)

    def test_unknown_source(self, converter, local_config, transaction_schema, transaction, encode):
        converter.initialize(local_config(SOURCE, transaction_schema))

        with pytest.raises(UnknownSourceError):
            converter.convert(TOPIC, "no-such-source", "1001", encode(transaction_schema, transaction))

    def test_converter_survives_per_call_errors(self, converter, local_config, transaction_schema, transaction, encode):
        converter.initialize(local_config(SOURCE, transaction_schema))

        with pytest.raises(UnknownSourceError):
            converter.convert(TOPIC, "no-such-source", "1", b"\x00")
        with pytest.raises(PayloadDecodeError):
            converter.convert(TOPIC, SOURCE, "1", b"")

        record = converter.convert(TOPIC, SOURCE, "1", encode(transaction_schema, transaction))
        assert record.value.to_dict() == transaction

    def test_primitive_schema(self, converter, local_config, encode):
        converter.initialize(local_config(SOURCE, '"string"'))

        record = converter.convert(TOPIC, SOURCE, "1", encode("string", "hello"))

        assert record.value == "hello"
        assert record.value_schema == ConnectSchema(type=SchemaType.STRING)

    def test_multiple_sources(self, converter, write_schema, order_schema, transaction_schema, transaction, encode):
        orders_path = write_schema(order_schema, "orders.avsc")
        transactions_path = write_schema(transaction_schema, "transactions.avsc")
        converter.initialize(
            {"connect.source.converter.avro.schemas": f"orders={orders_path},transactions={transactions_path}"}
        )

        order = converter.convert(TOPIC, "orders", "1", encode(order_schema, {"id": "A1", "qty": 3}))
        txn = converter.convert(TOPIC, "transactions", "2", encode(transaction_schema, transaction))

        assert order.value_schema.name == "Order"
        assert txn.value_schema.name == "com.example.Transaction"
        assert order.key_schema == txn.key_schema


class TestBootstrap:
    def test_build_converter_from_settings(self, write_schema, order_schema):
        path = write_schema(order_schema, "orders.avsc")

        converter = build_converter(settings=ConverterSettings(schemas=f"orders={path}"), manifest=Manifest())

        assert converter.state is ConverterState.READY
        assert converter.schema_table.identifiers() == ["orders"]

    def test_build_converter_propagates_configuration_errors(self):
        with pytest.raises(ConfigurationError):
            build_converter(settings=ConverterSettings(schemas=""), manifest=Manifest())
