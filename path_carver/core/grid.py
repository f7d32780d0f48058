from array import array
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List, Tuple

from path_carver.core.errors import InvalidDimensions, OutOfRange


class Direction(IntEnum):
    LEFT = 0
    RIGHT = 1
    UP = 2
    DOWN = 3


class Shape(IntEnum):
    """
    Path segment drawn in a cell.
    Corner names are the (incoming, outgoing) movement pair, e.g. LEFT_TO_DOWN
    is travelling left and then turning down.
    """
    EMPTY = 0
    STRAIGHT = 1      # vertical
    LEFT_RIGHT = 2    # horizontal
    LEFT_TO_DOWN = 3
    RIGHT_TO_DOWN = 4
    DOWN_TO_LEFT = 5
    DOWN_TO_RIGHT = 6


# Cell edges joined by each shape (N, E, S, W)
SHAPE_EDGES = {
    Shape.EMPTY: frozenset(),
    Shape.STRAIGHT: frozenset("NS"),
    Shape.LEFT_RIGHT: frozenset("EW"),
    Shape.LEFT_TO_DOWN: frozenset("ES"),
    Shape.RIGHT_TO_DOWN: frozenset("WS"),
    Shape.DOWN_TO_LEFT: frozenset("NW"),
    Shape.DOWN_TO_RIGHT: frozenset("NE"),
}


@dataclass(frozen=True)
class Cell:
    visited: bool
    shape: Shape


class Grid:
    # Low 3 bits hold the Shape, one flag bit marks the cell as visited
    SHAPE_MASK = 0b00000111
    VISITED = 0b00010000

    EMPTY_CELL = Shape.EMPTY

    __slots__ = ('width', 'height', 'cells', 'event_writer')

    def __init__(self, width: int, height: int, event_writer=None):
        if width <= 0 or height <= 0:
            raise InvalidDimensions(width, height)
        self.width = width
        self.height = height
        self.event_writer = event_writer
        # 'B' (unsigned char) -> 1 byte per cell
        self.cells = array('B', [self.EMPTY_CELL] * (width * height))

        if self.event_writer:
            self.event_writer.write_header(width, height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_index(self, x: int, y: int) -> int:
        if 0 <= x < self.width and 0 <= y < self.height:
            return y * self.width + x
        raise OutOfRange(x, y, self.width, self.height)

    def reset(self):
        """Marks every cell unvisited and empty."""
        for i in range(len(self.cells)):
            self.cells[i] = self.EMPTY_CELL
        if self.event_writer:
            self.event_writer.log_reset()

    def get(self, x: int, y: int) -> Cell:
        val = self.cells[self.get_index(x, y)]
        return Cell(visited=bool(val & self.VISITED), shape=Shape(val & self.SHAPE_MASK))

    def set(self, x: int, y: int, shape: Shape):
        """Writes the shape and marks the cell visited."""
        idx = self.get_index(x, y)
        self.cells[idx] = self.VISITED | int(shape)
        if self.event_writer:
            self.event_writer.log_tile(x, y, int(shape))

    def get_shape(self, x: int, y: int) -> Shape:
        return Shape(self.cells[self.get_index(x, y)] & self.SHAPE_MASK)

    def is_visited(self, x: int, y: int) -> bool:
        # Outside the grid counts as "not free" for the walker, never as an index
        if not (0 <= x < self.width and 0 <= y < self.height):
            return False
        return (self.cells[y * self.width + x] & self.VISITED) != 0

    def is_free(self, x: int, y: int) -> bool:
        """In bounds and not yet part of the corridor."""
        return self.in_bounds(x, y) and not (self.cells[y * self.width + x] & self.VISITED)

    def visited_cells(self) -> Iterator[Tuple[int, int]]:
        for idx, val in enumerate(self.cells):
            if val & self.VISITED:
                yield (idx % self.width, idx // self.width)

    def rows(self) -> List[List[Shape]]:
        w = self.width
        return [
            [Shape(v & self.SHAPE_MASK) for v in self.cells[y * w:(y + 1) * w]]
            for y in range(self.height)
        ]
