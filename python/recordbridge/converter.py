"""
Converters from record-reader key/value pairs to canonical values.
"""

from __future__ import annotations

import abc
import dataclasses
import logging
from typing import Any, Mapping

from .convert import from_canonical, to_canonical
from .errors import SchemaNotProvided
from .schema import PrimitiveSchema, Schema
from .setting import ConverterSettings
from .value import CanonicalValue

_logger = logging.getLogger(__name__)

INDEX_KEY_SCHEMA: Schema = PrimitiveSchema(kind="long")


@dataclasses.dataclass(frozen=True)
class AvroWrapper:
    """
    A datum as handed out by a record reader, optionally with the schema it
    was written with.
    """

    datum: Any
    schema: Schema | None = None


@dataclasses.dataclass(frozen=True)
class IndexKey:
    """A positional key, e.g. the offset of a record within its input split."""

    offset: int


class Converter(abc.ABC):
    """
    Converts one record's key and value between the external representation
    of a record-reader family and canonical values.
    """

    def __init__(self, conf: Mapping[str, Any] | None = None):
        self._settings = ConverterSettings.from_mapping(conf)

    @property
    def settings(self) -> ConverterSettings:
        return self._settings

    @abc.abstractmethod
    def convert(self, key: Any, value: Any) -> tuple[CanonicalValue, CanonicalValue]:
        """Convert an external key/value pair to canonical values."""

    @abc.abstractmethod
    def convert_back(self, key: Any, value: Any) -> tuple[Any, Any]:
        """Convert canonical key/value back to what the record writer takes."""


class RecordConverter(Converter):
    """
    Converter for readers handing out `AvroWrapper` / `IndexKey` keys and
    values, or bare datums.

    The schema embedded in an `AvroWrapper` takes precedence over the one
    configured for that side. `IndexKey` keys are converted as longs.
    """

    _key_schema: Schema | None
    _value_schema: Schema | None

    def __init__(
        self,
        key_schema: Schema | None = None,
        value_schema: Schema | None = None,
        conf: Mapping[str, Any] | None = None,
        settings: ConverterSettings | None = None,
    ):
        super().__init__(conf)
        if settings is not None:
            self._settings = settings
        self._key_schema = key_schema
        self._value_schema = value_schema

    def _unwrap(
        self, side: str, obj: Any, configured: Schema | None
    ) -> tuple[Any, Schema]:
        if isinstance(obj, IndexKey):
            return obj.offset, INDEX_KEY_SCHEMA
        if isinstance(obj, AvroWrapper):
            if obj.schema is not None:
                _logger.debug("Using schema embedded in the %s wrapper", side)
                return obj.datum, obj.schema
            obj = obj.datum
        if configured is None:
            raise SchemaNotProvided(side)
        return obj, configured

    def convert(self, key: Any, value: Any) -> tuple[CanonicalValue, CanonicalValue]:
        key_datum, key_schema = self._unwrap("key", key, self._key_schema)
        value_datum, value_schema = self._unwrap("value", value, self._value_schema)
        return (
            to_canonical(key_datum, key_schema, self._settings),
            to_canonical(value_datum, value_schema, self._settings),
        )

    def convert_back(self, key: Any, value: Any) -> tuple[Any, Any]:
        if self._key_schema is None:
            raise SchemaNotProvided("key")
        if self._value_schema is None:
            raise SchemaNotProvided("value")
        return (
            AvroWrapper(from_canonical(key, self._key_schema, self._settings)),
            AvroWrapper(from_canonical(value, self._value_schema, self._settings)),
        )
