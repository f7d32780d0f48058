from collections import Counter
from typing import Dict, List, Tuple

from path_carver.core.grid import Grid, Shape, SHAPE_EDGES

# Edge -> (dx, dy, opposite edge)
EDGE_STEP = {
    "N": (0, -1, "S"),
    "S": (0, 1, "N"),
    "E": (1, 0, "W"),
    "W": (-1, 0, "E"),
}

CORNERS = (Shape.LEFT_TO_DOWN, Shape.RIGHT_TO_DOWN, Shape.DOWN_TO_LEFT, Shape.DOWN_TO_RIGHT)


class CorridorAnalyzer:
    @staticmethod
    def find_entry(grid: Grid) -> Tuple[int, int]:
        """The top-row cell whose segment opens through the top edge of the grid."""
        entries = [x for x in range(grid.width) if "N" in SHAPE_EDGES[grid.get_shape(x, 0)]]
        if len(entries) != 1:
            raise ValueError(f"Expected exactly one entry on the top row, found {len(entries)}")
        return (entries[0], 0)

    @staticmethod
    def trace(grid: Grid) -> List[Tuple[int, int]]:
        """
        Follows the segment shapes from the entry cell to the exit on the bottom row.
        Raises ValueError if the shapes do not join up into a single corridor.
        """
        x, y = CorridorAnalyzer.find_entry(grid)
        came_from = "N"
        path = [(x, y)]
        seen = {(x, y)}

        while True:
            edges = SHAPE_EDGES[grid.get_shape(x, y)]
            if came_from not in edges:
                raise ValueError(f"Segment at ({x}, {y}) does not connect to its predecessor")
            exits = edges - {came_from}
            if len(exits) != 1:
                raise ValueError(f"Segment at ({x}, {y}) has no single exit")
            out = next(iter(exits))
            dx, dy, opposite = EDGE_STEP[out]
            nx, ny = x + dx, y + dy

            if not grid.in_bounds(nx, ny):
                if out == "S" and y == grid.height - 1:
                    return path
                raise ValueError(f"Corridor leaves the grid at ({x}, {y}) through {out}")
            if (nx, ny) in seen:
                raise ValueError(f"Corridor re-enters ({nx}, {ny})")

            x, y, came_from = nx, ny, opposite
            path.append((x, y))
            seen.add((x, y))

    @staticmethod
    def validate(grid: Grid) -> List[Tuple[int, int]]:
        """Checks that the visited cells are exactly one traced corridor and returns it."""
        path = CorridorAnalyzer.trace(grid)
        visited = set(grid.visited_cells())
        if visited != set(path):
            stray = sorted(visited - set(path))
            raise ValueError(f"Visited cells outside the corridor: {stray[:5]}")
        return path

    @staticmethod
    def calculate_stats(grid: Grid) -> Dict:
        path = CorridorAnalyzer.trace(grid)
        shapes = Counter(grid.get_shape(x, y) for x, y in path)

        # Climbs are maximal runs of upward moves
        climbs = 0
        climbed_cells = 0
        going_up = False
        for (x0, y0), (x1, y1) in zip(path, path[1:]):
            if y1 < y0:
                climbed_cells += 1
                if not going_up:
                    climbs += 1
                going_up = True
            else:
                going_up = False

        turns = sum(shapes[s] for s in CORNERS)
        total = grid.width * grid.height
        return {
            "length": len(path),
            "start": path[0],
            "end": path[-1],
            "turns": turns,
            "climbs": climbs,
            "climbed_cells": climbed_cells,
            "shapes": {s.name: shapes[s] for s in Shape if s != Shape.EMPTY},
            "coverage_percent": (len(path) / total) * 100 if total > 0 else 0,
        }
