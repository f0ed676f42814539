"""Tests for decodable value helpers."""

import json

import pytest
import yaml
from pydantic import BaseModel, ValidationError

from confwatch.values import (
    DocumentValue,
    ModelValue,
    RawValue,
    SupersededCallback,
    Value,
    WatchStoppedCallback,
    model_value,
)


class Limits(BaseModel):
    max_connections: int
    mode: str = "normal"


class TestRawValue:
    def test_keeps_bytes(self):
        value = RawValue()
        value.decode(b"hello")
        assert value.data == b"hello"
        assert str(value) == "hello"

    def test_str_tolerates_binary(self):
        value = RawValue()
        value.decode(b"\xff\xfe")
        assert isinstance(str(value), str)


class TestDocumentValue:
    def test_json(self):
        value = DocumentValue()
        value.decode(b'{"b": 2, "a": [1]}')
        assert value.data == {"a": [1], "b": 2}
        assert str(value) == '{"a": [1], "b": 2}'

    def test_yaml(self):
        value = DocumentValue("yaml")
        value.decode(b"a: 1\nb:\n  - x\n")
        assert value.data == {"a": 1, "b": ["x"]}

    def test_invalid_json_raises(self):
        with pytest.raises(json.JSONDecodeError):
            DocumentValue().decode(b"bad json")

    def test_invalid_yaml_raises(self):
        with pytest.raises(yaml.YAMLError):
            DocumentValue("yaml").decode(b"a: [1, 2")

    def test_unsupported_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            DocumentValue("toml")


class TestModelValue:
    def test_json(self):
        value = model_value(Limits)()
        value.decode(b'{"max_connections": 10}')
        assert value.model == Limits(max_connections=10)
        assert json.loads(str(value)) == {"max_connections": 10, "mode": "normal"}

    def test_yaml(self):
        value = ModelValue(Limits, "yaml")
        value.decode(b"max_connections: 5\nmode: strict\n")
        assert value.model.mode == "strict"

    def test_validation_error(self):
        with pytest.raises(ValidationError):
            ModelValue(Limits).decode(b'{"max_connections": "lots"}')

    def test_empty_value_str(self):
        assert str(ModelValue(Limits)) == "null"

    def test_factory_returns_fresh_instances(self):
        factory = model_value(Limits)
        assert factory() is not factory()


class TestCallbacks:
    def test_protocols(self):
        value = RawValue()
        assert isinstance(value, Value)
        assert isinstance(value, SupersededCallback)
        assert isinstance(value, WatchStoppedCallback)

    def test_plain_object_has_no_callbacks(self):
        class Plain:
            def decode(self, data):
                pass

        assert isinstance(Plain(), Value)
        assert not isinstance(Plain(), SupersededCallback)
        assert not isinstance(Plain(), WatchStoppedCallback)

    def test_events(self):
        value = DocumentValue()
        assert not value.superseded.is_set()
        value.on_superseded()
        assert value.superseded.is_set()
        assert not value.watch_stopped.is_set()
        value.on_watch_stopped()
        assert value.watch_stopped.is_set()
