"""Pure record, framing and gap logic shared by the backfill client and tools."""

from .records import RECORD_SIZE, Record, decode_record, encode_record
from .framing import FrameReader
from .gaps import max_sequence, missing_sequences
from .schema import OUTPUT_FIELDS, SCHEMA_VERSION, output_schema, write_schema

__all__ = [
    "RECORD_SIZE",
    "Record",
    "decode_record",
    "encode_record",
    "FrameReader",
    "max_sequence",
    "missing_sequences",
    "OUTPUT_FIELDS",
    "SCHEMA_VERSION",
    "output_schema",
    "write_schema",
]
