"""
SharedDict construction configuration.

Options can come from keyword arguments, a plain dict (e.g. parsed JSON) or
environment variables prefixed with ``SHAREDBOX_``.
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sharedbox.codec.opaque import SerializationFormat
from sharedbox.core.exceptions import InvalidArgumentError
from sharedbox.defaults.constants import ENV_PREFIX, SegmentConstants

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(option: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidArgumentError(
        f"Option '{option}' expects a boolean, got {raw!r}",
        details={"option": option, "value": raw}
    )


def _parse_int(option: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidArgumentError(
            f"Option '{option}' expects an integer, got {raw!r}",
            details={"option": option, "value": raw}
        )
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(
            f"Option '{option}' expects an integer, got {raw!r}",
            details={"option": option, "value": raw},
            original_exception=e
        )


def _parse_format(raw: Any) -> SerializationFormat:
    if isinstance(raw, SerializationFormat):
        return raw
    try:
        if isinstance(raw, str) and not raw.strip().isdigit():
            return SerializationFormat[raw.strip().upper()]
        return SerializationFormat(int(raw))
    except (KeyError, ValueError) as e:
        raise InvalidArgumentError(
            f"Unknown serialization format {raw!r}",
            details={"option": "serialization_format", "value": raw},
            original_exception=e
        )


@dataclass
class SharedDictConfig:
    """
    Recognized construction options of a SharedDict.

    :param name: Segment identifier.
    :param size: Capacity in bytes (default 128 MiB).
    :param create: Create the segment instead of attaching to it.
    :param max_keys: Maximum number of distinct keys.
    :param initial_data: Optional string-keyed mapping loaded at construction.
    :param serialization_format: Serializer for non-tensor values.
    """
    name: str
    size: int = SegmentConstants.DEFAULT_SIZE
    create: bool = SegmentConstants.DEFAULT_CREATE
    max_keys: int = SegmentConstants.DEFAULT_MAX_KEYS
    initial_data: Optional[Mapping[str, Any]] = None
    serialization_format: SerializationFormat = SerializationFormat.PICKLE

    def validate(self) -> "SharedDictConfig":
        """
        Check option values.

        Raises:
            InvalidArgumentError: If an option is out of range
        """
        if not isinstance(self.name, str) or not self.name:
            raise InvalidArgumentError(
                "Segment name must be a non-empty string",
                details={"option": "name", "value": self.name}
            )
        for option in ("size", "max_keys"):
            value = getattr(self, option)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidArgumentError(
                    f"Option '{option}' expects an integer, got {value!r}",
                    details={"option": option, "value": value}
                )
        if self.size <= 0:
            raise InvalidArgumentError(
                f"Segment size must be positive, got {self.size}",
                details={"option": "size", "value": self.size}
            )
        if self.max_keys <= 0:
            raise InvalidArgumentError(
                f"max_keys must be positive, got {self.max_keys}",
                details={"option": "max_keys", "value": self.max_keys}
            )
        if self.initial_data is not None and not isinstance(self.initial_data, Mapping):
            raise InvalidArgumentError(
                "Argument 'data' has incorrect type (expected dict)",
                details={"option": "initial_data", "type": type(self.initial_data).__name__}
            )
        return self

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> "SharedDictConfig":
        """
        Build a config from a plain mapping.

        Accepts ``data`` as an alias of ``initial_data``; unknown options are
        rejected.

        Raises:
            InvalidArgumentError: If an option is unknown, missing or invalid
        """
        if not isinstance(options, Mapping):
            raise InvalidArgumentError("Configuration must be a mapping")

        options = dict(options)
        if "data" in options:
            options["initial_data"] = options.pop("data")

        unknown = set(options) - {
            "name", "size", "create", "max_keys", "initial_data", "serialization_format"
        }
        if unknown:
            raise InvalidArgumentError(
                f"Unknown configuration options: {sorted(unknown)}",
                details={"options": sorted(unknown)}
            )
        if "name" not in options:
            raise InvalidArgumentError("Configuration must contain a 'name'")

        config = cls(name=options["name"])
        if "size" in options:
            config.size = _parse_int("size", options["size"])
        if "create" in options:
            config.create = _parse_bool("create", options["create"])
        if "max_keys" in options:
            config.max_keys = _parse_int("max_keys", options["max_keys"])
        if "initial_data" in options:
            config.initial_data = options["initial_data"]
        if "serialization_format" in options:
            config.serialization_format = _parse_format(options["serialization_format"])
        return config.validate()

    @classmethod
    def from_env(cls, name: Optional[str] = None) -> "SharedDictConfig":
        """
        Build a config from ``SHAREDBOX_*`` environment variables.

        Reads SHAREDBOX_NAME (unless *name* is given), SHAREDBOX_SIZE,
        SHAREDBOX_CREATE, SHAREDBOX_MAX_KEYS and SHAREDBOX_SERIALIZATION.

        Raises:
            InvalidArgumentError: If no name is available or a value is invalid
        """
        name = name or os.getenv(f"{ENV_PREFIX}NAME")
        if not name:
            raise InvalidArgumentError(
                f"No segment name given and {ENV_PREFIX}NAME is not set"
            )

        config = cls(name=name)
        size = os.getenv(f"{ENV_PREFIX}SIZE")
        if size is not None:
            config.size = _parse_int("size", size)
        create = os.getenv(f"{ENV_PREFIX}CREATE")
        if create is not None:
            config.create = _parse_bool("create", create)
        max_keys = os.getenv(f"{ENV_PREFIX}MAX_KEYS")
        if max_keys is not None:
            config.max_keys = _parse_int("max_keys", max_keys)
        fmt = os.getenv(f"{ENV_PREFIX}SERIALIZATION")
        if fmt is not None:
            config.serialization_format = _parse_format(fmt)

        logger.debug(f"Loaded SharedDict config from environment: {config}")
        return config.validate()
