class PathCarverError(Exception):
    """Base class for every error raised by path_carver."""


class OutOfRange(PathCarverError, IndexError):
    """Coordinate outside the grid. Always a programming error."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(f"Coordinate ({x}, {y}) out of bounds for {width}x{height} grid")
        self.x = x
        self.y = y


class InvalidDimensions(PathCarverError, ValueError):
    def __init__(self, width: int, height: int):
        super().__init__(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height


class Stalled(PathCarverError, RuntimeError):
    """The walker is boxed in and cannot leave its cell without re-entering the corridor."""

    def __init__(self, x: int, y: int, reason: str = "boxed in"):
        super().__init__(f"Walker stalled at ({x}, {y}): {reason}")
        self.x = x
        self.y = y
