"""
Unit tests for the SharedDict mapping facade.
"""
import pickle
from unittest.mock import Mock

import numpy as np
import pytest

from sharedbox import SharedDict, SharedDictConfig
from sharedbox.codec.opaque import SerializationFormat
from sharedbox.core.exceptions import (
    CapacityExceededError,
    InvalidArgumentError,
    InvalidStateError,
    KeyNotFoundError,
    MalformedValueError,
    SegmentNotFoundError,
    UnsupportedTypeError,
)
from sharedbox.engine import InProcessEngine, SharedMemoryEngine


@pytest.mark.unit
class TestMappingOperations:
    """Test CRUD semantics."""

    def test_float_matrix_scenario(self, shared_dict, float_matrix):
        """Test storing and reading back a 2x3 float32 tensor."""
        shared_dict["x"] = float_matrix

        assert len(shared_dict) == 1
        value = shared_dict["x"]
        assert value.shape == (2, 3)
        assert value.dtype == np.float32
        np.testing.assert_array_equal(value, [[1, 2, 3], [4, 5, 6]])
        assert shared_dict.get_stats()["total_entries"] == 1

    def test_write_new_key_grows_length(self, shared_dict):
        shared_dict["a"] = 1
        before = len(shared_dict)

        shared_dict["b"] = 2

        assert len(shared_dict) == before + 1

    def test_overwrite_keeps_length(self, shared_dict):
        shared_dict["a"] = 1
        before = len(shared_dict)

        shared_dict["a"] = "replaced"

        assert len(shared_dict) == before
        assert shared_dict["a"] == "replaced"

    def test_contains_after_write_and_delete(self, shared_dict):
        shared_dict["k"] = {"v": 1}
        assert "k" in shared_dict

        del shared_dict["k"]
        assert "k" not in shared_dict

    def test_read_missing_key(self, shared_dict):
        with pytest.raises(KeyNotFoundError) as exc_info:
            shared_dict["never"]

        assert exc_info.value.key == "never"

    def test_missing_key_is_a_key_error(self, shared_dict):
        with pytest.raises(KeyError):
            shared_dict["never"]

    def test_delete_missing_key(self, shared_dict):
        with pytest.raises(KeyNotFoundError):
            del shared_dict["never"]

    @pytest.mark.parametrize("key", [1, b"bytes", None, ("t",)])
    def test_non_string_keys_rejected(self, shared_dict, key):
        with pytest.raises(InvalidArgumentError):
            shared_dict[key] = 1
        with pytest.raises(InvalidArgumentError):
            shared_dict[key]
        with pytest.raises(InvalidArgumentError):
            key in shared_dict
        with pytest.raises(InvalidArgumentError):
            del shared_dict[key]

    def test_mixed_values(self, shared_dict):
        shared_dict["tensor"] = np.arange(4, dtype=np.int16)
        shared_dict["dict"] = {"nested": [1, 2]}
        shared_dict["text"] = "hello"
        shared_dict["none"] = None

        np.testing.assert_array_equal(shared_dict["tensor"], np.arange(4, dtype=np.int16))
        assert shared_dict["dict"] == {"nested": [1, 2]}
        assert shared_dict["text"] == "hello"
        assert shared_dict["none"] is None

    def test_scalar_array_keeps_shape(self, shared_dict):
        shared_dict["s"] = np.array(3.0)

        value = shared_dict["s"]

        assert value.shape == ()
        assert value.dtype == np.float64
        assert value == 3.0

    def test_unicode_and_empty_keys(self, shared_dict):
        shared_dict["ключ"] = 1
        shared_dict[""] = 2

        assert shared_dict["ключ"] == 1
        assert shared_dict[""] == 2

    def test_unserializable_value_leaves_no_entry(self, shared_dict):
        with pytest.raises(UnsupportedTypeError):
            shared_dict["bad"] = lambda: None

        assert "bad" not in shared_dict


@pytest.mark.unit
class TestGetWithDefault:
    """Test get() fallback behavior."""

    def test_present_key(self, shared_dict):
        shared_dict["a"] = [1]

        assert shared_dict.get("a") == [1]

    def test_missing_key_returns_none(self, shared_dict):
        assert shared_dict.get("missing") is None

    def test_missing_key_returns_default(self, shared_dict):
        assert shared_dict.get("missing", "fallback") == "fallback"

    def test_corrupt_value_returns_default(self, segment_name):
        """Test decode failures are swallowed."""
        engine = InProcessEngine(segment_name, size=4096, create=True, max_keys=8)
        engine.set("corrupt", b"\x01\x00")
        d = SharedDict(segment_name, create=False)

        assert d.get("corrupt", "fallback") == "fallback"
        with pytest.raises(MalformedValueError):
            d["corrupt"]

    def test_non_string_key_returns_default(self, shared_dict):
        assert shared_dict.get(5, "fallback") == "fallback"

    def test_closed_dict_returns_default(self, shared_dict):
        shared_dict["a"] = 1
        shared_dict.close()

        assert shared_dict.get("a", "fallback") == "fallback"


@pytest.mark.unit
class TestEnumeration:
    """Test keys(), values(), items() and iteration."""

    def test_empty(self, shared_dict):
        assert shared_dict.keys() == []
        assert shared_dict.values() == []
        assert shared_dict.items() == []

    def test_every_key_once(self, shared_dict):
        data = {"a": 1, "b": "two", "c": np.ones(2)}
        for key, value in data.items():
            shared_dict[key] = value

        keys = shared_dict.keys()
        items = dict(shared_dict.items())

        assert isinstance(keys, list)
        assert sorted(keys) == ["a", "b", "c"]
        assert sorted(shared_dict) == ["a", "b", "c"]
        assert items["a"] == 1
        assert items["b"] == "two"
        np.testing.assert_array_equal(items["c"], np.ones(2))
        assert len(shared_dict.values()) == 3

    def test_values_follow_key_order(self, shared_dict):
        for i in range(5):
            shared_dict[f"k{i}"] = i

        assert shared_dict.values() == [int(k[1:]) for k in shared_dict.keys()]

    def test_keys_vanishing_during_enumeration_are_skipped(self, shared_dict):
        """Test a key erased between enumeration and read is left out."""
        shared_dict["keep"] = 1
        shared_dict["gone"] = 2
        engine = shared_dict.handle.engine
        real_get = engine.get
        engine.get = Mock(side_effect=lambda key: None if key == "gone" else real_get(key))

        assert shared_dict.items() == [("keep", 1)]


@pytest.mark.unit
class TestLifecycle:
    """Test close, unlink and attachment."""

    def test_close_is_idempotent(self, shared_dict):
        shared_dict.close()
        shared_dict.close()

        assert shared_dict.is_closed()

    def test_unlink_while_open(self, shared_dict):
        with pytest.raises(InvalidStateError):
            shared_dict.unlink()

        assert not shared_dict.is_closed()

    def test_unlink_after_close(self, segment_name):
        d = SharedDict(segment_name, max_keys=8)
        d.close()

        d.unlink()

        assert d.is_closed()
        with pytest.raises(SegmentNotFoundError):
            SharedDict(segment_name, create=False)

    def test_operations_after_close(self, shared_dict):
        shared_dict.close()

        with pytest.raises(InvalidStateError):
            len(shared_dict)

    def test_context_manager_closes(self, segment_name):
        with SharedDict(segment_name, max_keys=8) as d:
            d["a"] = 1
            assert not d.is_closed()

        assert d.is_closed()

    def test_second_instance_shares_data(self, shared_dict, segment_name):
        shared_dict["a"] = np.arange(3)

        other = SharedDict(segment_name, create=False)

        np.testing.assert_array_equal(other["a"], np.arange(3))
        other["b"] = "from other"
        assert shared_dict["b"] == "from other"

    def test_close_one_instance_keeps_other_open(self, shared_dict, segment_name):
        other = SharedDict(segment_name, create=False)
        other.close()

        shared_dict["a"] = 1
        assert shared_dict["a"] == 1

    def test_attach_to_missing_segment(self, segment_name):
        with pytest.raises(SegmentNotFoundError):
            SharedDict(segment_name, create=False)

    def test_handle_describes_segment(self, segment_name):
        d = SharedDict(segment_name, size=4096, max_keys=8)

        assert d.name == segment_name
        assert d.handle.capacity_bytes == 4096
        assert d.handle.max_keys == 8
        assert d.handle.created is True

    def test_handle_reports_limits_of_existing_segment(self, segment_name):
        """Test reopening with other limits describes the segment as created."""
        SharedDict(segment_name, size=4096, max_keys=2)

        again = SharedDict(segment_name, size=8192, create=True, max_keys=50)

        assert again.handle.capacity_bytes == 4096
        assert again.handle.max_keys == 2
        again["a"] = 1
        again["b"] = 2
        with pytest.raises(CapacityExceededError):
            again["c"] = 3

    def test_handle_uses_requested_limits_without_engine_report(self, segment_name):
        engine = Mock(spec=SharedMemoryEngine)
        engine.capacity.return_value = None
        engine.key_limit.return_value = None

        d = SharedDict(
            segment_name, size=2048, max_keys=4, engine_factory=Mock(return_value=engine)
        )

        assert d.handle.capacity_bytes == 2048
        assert d.handle.max_keys == 4

    def test_repr(self, shared_dict, segment_name):
        assert repr(shared_dict) == f"SharedDict(name={segment_name!r}, closed=False)"


@pytest.mark.unit
class TestConstruction:
    """Test constructor options and injection."""

    @pytest.mark.parametrize("kwargs", [
        {"size": 0},
        {"max_keys": 0},
        {"size": -1},
    ])
    def test_invalid_options(self, segment_name, kwargs):
        with pytest.raises(InvalidArgumentError):
            SharedDict(segment_name, **kwargs)

    def test_empty_name(self):
        with pytest.raises(InvalidArgumentError):
            SharedDict("")

    def test_engine_factory(self, segment_name):
        """Test the injected factory receives the construction options."""
        factory = Mock(side_effect=InProcessEngine)

        SharedDict(segment_name, size=2048, create=True, max_keys=4, engine_factory=factory)

        factory.assert_called_once_with(segment_name, 2048, True, 4)

    def test_capacity_errors_propagate(self, segment_name):
        d = SharedDict(segment_name, max_keys=1)
        d["a"] = 1

        with pytest.raises(CapacityExceededError):
            d["b"] = 2

    def test_msgpack_serialization(self, segment_name):
        d = SharedDict(segment_name, serialization_format=SerializationFormat.MSGPACK)

        d["a"] = {"x": [1, 2]}

        assert d.handle.engine.get("a")[0] == 0
        assert d["a"] == {"x": [1, 2]}

    def test_from_config(self, segment_name):
        config = SharedDictConfig(name=segment_name, max_keys=4, initial_data={"a": 1})

        d = SharedDict.from_config(config)

        assert d["a"] == 1
        assert d.handle.max_keys == 4

    def test_reads_legacy_values(self, segment_name):
        """Test values written before the marker byte existed."""
        engine = InProcessEngine(segment_name, size=4096, create=True, max_keys=8)
        engine.set("old", pickle.dumps({"legacy": 1}, protocol=pickle.HIGHEST_PROTOCOL))

        d = SharedDict(segment_name, create=False)

        assert d["old"] == {"legacy": 1}
