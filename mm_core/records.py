from __future__ import annotations

import struct
from dataclasses import dataclass

# symbol(4) side(1) quantity(4) price(4) sequence(4), all ints big-endian signed
RECORD_STRUCT = struct.Struct(">4sciii")
RECORD_SIZE = RECORD_STRUCT.size

SIDE_BUY = "B"
SIDE_SELL = "S"
SIDES = (SIDE_BUY, SIDE_SELL)

_SYMBOL_PAD = " \x00"


@dataclass(frozen=True)
class Record:
    symbol: str
    side: str
    quantity: int
    price: int
    sequence: int

    @property
    def symbol_text(self) -> str:
        """Symbol with trailing blanks/NUL padding removed."""
        return self.symbol.rstrip(_SYMBOL_PAD)

    @property
    def side_known(self) -> bool:
        return self.side in SIDES


def decode_record(buf, offset: int = 0) -> Record:
    """Decode one 17-byte frame starting at `offset`.

    The caller guarantees that RECORD_SIZE bytes are available.
    """
    symbol, side, quantity, price, sequence = RECORD_STRUCT.unpack_from(buf, offset)
    return Record(
        symbol=symbol.decode("latin-1"),
        side=side.decode("latin-1"),
        quantity=quantity,
        price=price,
        sequence=sequence,
    )


def encode_record(record: Record) -> bytes:
    symbol = record.symbol.encode("latin-1")[:4].ljust(4, b" ")
    side = record.side.encode("latin-1")[:1] or b" "
    return RECORD_STRUCT.pack(symbol, side, record.quantity, record.price, record.sequence)
