import io
from typing import BinaryIO, Optional, Union

MAX_BITS = 32 # widest field read or written in one call


def _check_width(num_bits: int) -> None:
    if not 1 <= num_bits <= MAX_BITS:
        raise ValueError(f"bit width must be in 1..{MAX_BITS}, got {num_bits}")


class BitInputStream: # reads MSB-first bit fields from bytes or a binary file
    def __init__(self, source: Union[bytes, bytearray, BinaryIO]):
        if isinstance(source, (bytes, bytearray)):
            self.file = io.BytesIO(bytes(source))
            self._owns_file = True
        else:
            self.file = source
            self._owns_file = False
        self.buffer = 0
        self.n_bits = 0
        self.bits_read = 0

    @classmethod
    def from_path(cls, path) -> "BitInputStream":
        stream = cls(open(path, "rb"))
        stream._owns_file = True
        return stream

    def read_bits(self, num_bits: int) -> Optional[int]:
        """
        Returns the next num_bits as an int, or None when fewer than
        num_bits remain in the stream
        """
        _check_width(num_bits)
        while self.n_bits < num_bits:
            byte_data = self.file.read(1)
            if not byte_data:
                return None
            self.buffer = (self.buffer << 8) | byte_data[0]
            self.n_bits += 8

        self.n_bits -= num_bits
        value = self.buffer >> self.n_bits
        self.buffer &= (1 << self.n_bits) - 1
        self.bits_read += num_bits
        return value

    def reset(self) -> None:
        if not self.file.seekable():
            raise ValueError("input stream cannot be rewound for a second pass")
        self.file.seek(0)
        self.buffer = 0
        self.n_bits = 0
        self.bits_read = 0

    def close(self) -> None:
        if self._owns_file:
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class BitOutputStream: # writes MSB-first bit fields, zero-padding the last byte on close
    def __init__(self, sink: Optional[BinaryIO] = None):
        # an in-memory buffer stays open after close() so getvalue() still works
        self.file = io.BytesIO() if sink is None else sink
        self._owns_file = False
        self.buffer = 0
        self.n_bits = 0
        self.bits_written = 0
        self.closed = False

    @classmethod
    def from_path(cls, path) -> "BitOutputStream":
        stream = cls(open(path, "wb"))
        stream._owns_file = True
        return stream

    def write_bits(self, num_bits: int, value: int) -> None:
        _check_width(num_bits)
        if self.closed:
            raise ValueError("write to a closed bit stream")
        if value < 0 or value >> num_bits:
            raise ValueError(f"value {value} does not fit in {num_bits} bits")

        self.buffer = (self.buffer << num_bits) | value
        self.n_bits += num_bits
        self.bits_written += num_bits

        while self.n_bits >= 8:
            self.n_bits -= 8
            byte = self.buffer >> self.n_bits
            self.file.write(bytes([byte]))
            self.buffer &= (1 << self.n_bits) - 1

    def flush(self) -> None:
        # whole bytes are already written; a partial byte waits for close()
        self.file.flush()

    def close(self) -> None:
        if self.closed:
            return
        if self.n_bits > 0:
            byte = self.buffer << (8 - self.n_bits)
            self.file.write(bytes([byte]))
            self.buffer = 0
            self.n_bits = 0
        self.file.flush()
        self.closed = True
        if self._owns_file:
            self.file.close()

    def getvalue(self) -> bytes:
        if not isinstance(self.file, io.BytesIO):
            raise ValueError("getvalue() is only available for in-memory streams")
        return self.file.getvalue()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
