from typing import List
from path_carver.core.grid import Grid, Shape

# Box-drawing glyph per segment, chosen by the cell edges it joins
GLYPHS = {
    Shape.EMPTY: "·",
    Shape.STRAIGHT: "│",
    Shape.LEFT_RIGHT: "─",
    Shape.LEFT_TO_DOWN: "┌",   # east + south
    Shape.RIGHT_TO_DOWN: "┐",  # west + south
    Shape.DOWN_TO_LEFT: "┘",   # north + west
    Shape.DOWN_TO_RIGHT: "└",  # north + east
}


def render_lines(grid: Grid) -> List[str]:
    return ["".join(GLYPHS[shape] for shape in row) for row in grid.rows()]


def render_text(grid: Grid) -> str:
    return "\n".join(render_lines(grid))
