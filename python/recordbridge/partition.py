"""
Convert all records of one input split.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Iterator

from .converter import Converter
from .errors import ConversionError
from .value import CanonicalValue

_logger = logging.getLogger(__name__)


@dataclasses.dataclass
class PartitionStats:
    converted: int = 0
    skipped: int = 0


def convert_partition(
    converter: Converter,
    records: Iterable[tuple[Any, Any]],
    skip_errors: bool = False,
    stats: PartitionStats | None = None,
) -> Iterator[tuple[CanonicalValue, CanonicalValue]]:
    """
    Lazily convert the key/value pairs of one split.

    A record that fails to convert either aborts the iteration (the error
    propagates) or, with `skip_errors`, is logged and left out.
    """
    stats = stats if stats is not None else PartitionStats()
    for position, (key, value) in enumerate(records):
        try:
            converted = converter.convert(key, value)
        except ConversionError:
            if not skip_errors:
                raise
            stats.skipped += 1
            _logger.warning(
                "Skipping record #%d that failed to convert", position, exc_info=True
            )
            continue
        stats.converted += 1
        yield converted
