"""
Fuses the rows of one time bucket into one value per field.

The aggregation strategy of every field is read from the row dataclass
metadata, see r9convert.models.rows.
"""

from dataclasses import fields
from typing import Any, Sequence

from r9convert.models.garmin import FusedRecord
from r9convert.models.rows import ROW_TYPES, RowType, TimeBucket
from r9convert.utils.aggregation import aggregate


def fused_fields(row_class: type) -> dict[str, Any]:
    """Field name -> aggregation strategy for a row dataclass."""
    return {
        f.name: f.metadata["aggregate"]
        for f in fields(row_class)
        if "aggregate" in f.metadata
    }


def fuse_rows(rows: Sequence, row_class: type) -> dict[str, Any]:
    """Reduce rows of one subsystem; no rows gives an empty dict."""
    if not rows:
        return {}
    return {
        name: aggregate([getattr(row, name) for row in rows], strategy)
        for name, strategy in fused_fields(row_class).items()
    }


def fuse_bucket(bucket: TimeBucket) -> FusedRecord:
    return FusedRecord(
        timestamp=bucket.timestamp,
        engine=fuse_rows(bucket.engine, ROW_TYPES[RowType.ENGINE]),
        flight=fuse_rows(bucket.flight, ROW_TYPES[RowType.FLIGHT]),
        system=fuse_rows(bucket.system, ROW_TYPES[RowType.SYSTEM]),
    )
