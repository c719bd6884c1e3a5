"""
LZW - Variable-width LZW as used by GIF image data.

Codes are packed least-significant bit first. The code width starts at
``min_code_size + 1`` bits and grows up to 12 bits; a clear code resets
the table. Both directions bump the width at the same point so a stream
written by :func:`lzw_encode` reads back with :func:`lzw_decode`.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
from numpy.typing import NDArray


MAX_CODE = 4095
MAX_CODE_SIZE = 12


class _BitWriter:
    def __init__(self) -> None:
        self.buffer = bytearray()
        self._acc = 0
        self._bits = 0

    def write(self, code: int, size: int) -> None:
        self._acc |= code << self._bits
        self._bits += size
        while self._bits >= 8:
            self.buffer.append(self._acc & 0xFF)
            self._acc >>= 8
            self._bits -= 8

    def flush(self) -> bytes:
        if self._bits > 0:
            self.buffer.append(self._acc & 0xFF)
            self._acc = 0
            self._bits = 0
        return bytes(self.buffer)


def lzw_encode(indices: Iterable[int] | NDArray, min_code_size: int) -> bytes:
    """
    Compress palette indices into a GIF LZW code stream.

    Args:
        indices: Palette index per pixel, each < 2 ** min_code_size
        min_code_size: Minimum code size (2..8)

    Returns:
        The packed code stream (not yet split into sub-blocks)
    """
    clear_code = 1 << min_code_size
    eoi_code = clear_code + 1

    writer = _BitWriter()
    code_size = min_code_size + 1
    next_code = eoi_code + 1
    table: dict[tuple[int, int], int] = {}

    writer.write(clear_code, code_size)

    symbols = np.asarray(indices, dtype=np.int64).reshape(-1).tolist()
    if not symbols:
        writer.write(eoi_code, code_size)
        return writer.flush()

    prefix = symbols[0]
    for k in symbols[1:]:
        key = (prefix, k)
        code = table.get(key)
        if code is not None:
            prefix = code
            continue

        writer.write(prefix, code_size)
        if next_code <= MAX_CODE:
            table[key] = next_code
            next_code += 1
            if next_code > (1 << code_size) and code_size < MAX_CODE_SIZE:
                code_size += 1
        else:
            writer.write(clear_code, code_size)
            table.clear()
            code_size = min_code_size + 1
            next_code = eoi_code + 1
        prefix = k

    writer.write(prefix, code_size)
    # The reader adds one more entry after the final code before it sees EOI
    if next_code <= MAX_CODE:
        next_code += 1
        if next_code > (1 << code_size) and code_size < MAX_CODE_SIZE:
            code_size += 1
    writer.write(eoi_code, code_size)
    return writer.flush()


def lzw_decode(data: bytes, min_code_size: int, pixel_count: int) -> list[int]:
    """
    Decompress a GIF LZW code stream.

    Decoding stops at the end-of-information code, when ``pixel_count``
    indices have been produced, when the data runs out, or at an invalid
    code. The result may therefore be shorter than ``pixel_count``.
    """
    clear_code = 1 << min_code_size
    eoi_code = clear_code + 1
    code_size = min_code_size + 1
    next_code = eoi_code + 1
    max_code = (1 << code_size) - 1

    table: list[list[int]] = [[i] for i in range(clear_code)] + [[], []]
    output: list[int] = []

    acc = 0
    bits = 0
    pos = 0
    total_bits = len(data) * 8
    consumed = 0
    prev: int | None = None

    while len(output) < pixel_count:
        while bits < code_size and pos < len(data):
            acc |= data[pos] << bits
            pos += 1
            bits += 8
        if consumed + code_size > total_bits:
            break
        code = acc & ((1 << code_size) - 1)
        acc >>= code_size
        bits -= code_size
        consumed += code_size

        if code == clear_code:
            code_size = min_code_size + 1
            next_code = eoi_code + 1
            max_code = (1 << code_size) - 1
            del table[eoi_code + 1:]
            prev = None
            continue
        if code == eoi_code:
            break

        if code < len(table):
            entry = table[code]
        elif code == next_code and prev is not None:
            entry = table[prev] + [table[prev][0]]
        else:
            break

        output.extend(entry)

        if prev is not None and next_code <= MAX_CODE:
            table.append(table[prev] + [entry[0]])
            next_code += 1
            if next_code > max_code and code_size < MAX_CODE_SIZE:
                code_size += 1
                max_code = (1 << code_size) - 1

        prev = code

    return output[:pixel_count]
