import struct
import json
import zlib
from typing import BinaryIO, Dict, Any, Tuple
from array import array
from path_carver.core.grid import Grid, Shape

# magic, version, flags, width, height, meta length
HEADER = struct.Struct("<4sBBIIH")
DATA_LEN = struct.Struct("<I")


def _read_exact(f: BinaryIO, size: int, what: str) -> bytes:
    data = f.read(size)
    if len(data) != size:
        raise ValueError(f"Truncated grid file: expected {size} bytes of {what}, found {len(data)}")
    return data


class GridSerializer:
    """
    Binary grid files: a fixed header, a JSON metadata blob, then one byte per
    cell (visited bit and shape code), optionally zlib compressed.
    """
    MAGIC = b"PATH"
    VERSION = 1

    FLAG_COMPRESSED = 1

    @staticmethod
    def save(grid: Grid, filepath: str, meta: Dict[str, Any] = None, compress=False):
        flags = GridSerializer.FLAG_COMPRESSED if compress else 0
        meta_bytes = json.dumps(meta or {}).encode('utf-8')

        payload = grid.cells.tobytes()
        if compress:
            payload = zlib.compress(payload)

        with open(filepath, "wb") as f:
            f.write(HEADER.pack(GridSerializer.MAGIC, GridSerializer.VERSION, flags,
                                grid.width, grid.height, len(meta_bytes)))
            f.write(meta_bytes)
            f.write(DATA_LEN.pack(len(payload)))
            f.write(payload)

    @staticmethod
    def load(filepath: str) -> Tuple[Grid, Dict[str, Any]]:
        with open(filepath, "rb") as f:
            head = f.read(HEADER.size)
            if len(head) < HEADER.size or not head.startswith(GridSerializer.MAGIC):
                raise ValueError("Invalid file format")

            _, version, flags, width, height, meta_len = HEADER.unpack(head)
            if version != GridSerializer.VERSION:
                raise ValueError(f"Unsupported grid file version {version}")
            meta = json.loads(_read_exact(f, meta_len, "metadata").decode('utf-8'))

            (payload_len,) = DATA_LEN.unpack(_read_exact(f, DATA_LEN.size, "data length"))
            payload = _read_exact(f, payload_len, "cell data")

        if flags & GridSerializer.FLAG_COMPRESSED:
            try:
                payload = zlib.decompress(payload)
            except zlib.error as e:
                raise ValueError(f"Corrupt compressed cell data: {e}") from e
        if len(payload) != width * height:
            raise ValueError(f"Expected {width * height} cells, found {len(payload)}")

        # Only the visited bit and a known shape code may be set
        known = {shape | flag for shape in Shape for flag in (0, Grid.VISITED)}
        bad = set(payload) - known
        if bad:
            raise ValueError(f"Unknown cell values in grid file: {sorted(bad)[:5]}")

        grid = Grid(width, height)
        grid.cells = array('B', payload)
        return grid, meta
