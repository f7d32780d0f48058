import struct
from typing import Iterator, Tuple

# Event Types
EVT_RESET = 0x01
EVT_TILE = 0x02
EVT_STALL = 0x03

MAGIC = b"PATHLOG"


class EventWriter:
    def __init__(self, filename: str):
        self.filename = filename
        self.file = open(filename, "wb")
        self.header_written = False

    def write_header(self, width: int, height: int):
        # Header: Magic "PATHLOG" + Width (4b) + Height (4b)
        if self.header_written:
            return
        self.file.write(MAGIC)
        self.file.write(struct.pack(">II", width, height))
        self.header_written = True

    def log_tile(self, x: int, y: int, shape: int):
        # 1 byte type + 2b X + 2b Y + 1b Shape
        self.file.write(struct.pack(">BHHB", EVT_TILE, x, y, shape))

    def log_reset(self):
        self.file.write(struct.pack(">B", EVT_RESET))

    def log_stall(self, x: int, y: int):
        self.file.write(struct.pack(">BHH", EVT_STALL, x, y))

    def close(self):
        if self.file:
            self.file.close()
            self.file = None


class EventReader:
    def __init__(self, filename: str):
        self.filename = filename
        self.file = open(filename, "rb")
        self.width = 0
        self.height = 0

    def read_header(self) -> Tuple[int, int]:
        magic = self.file.read(len(MAGIC))
        if magic != MAGIC:
            raise ValueError("Invalid event log file")
        self.width, self.height = struct.unpack(">II", self._read(8))
        return self.width, self.height

    def _read(self, size: int) -> bytes:
        data = self.file.read(size)
        if len(data) != size:
            raise ValueError(f"Truncated event log {self.filename}")
        return data

    def stream_events(self) -> Iterator[Tuple[int, Tuple]]:
        while True:
            type_byte = self.file.read(1)
            if not type_byte:
                break

            type_code = ord(type_byte)

            if type_code == EVT_TILE:
                x, y, shape = struct.unpack(">HHB", self._read(5))  # 2 shorts + 1 byte
                yield (type_code, (x, y, shape))

            elif type_code == EVT_RESET:
                yield (type_code, ())

            elif type_code == EVT_STALL:
                x, y = struct.unpack(">HH", self._read(4))
                yield (type_code, (x, y))

            else:
                raise ValueError(f"Unknown event type 0x{type_code:02x} in {self.filename}")

    def close(self):
        if self.file:
            self.file.close()
            self.file = None
