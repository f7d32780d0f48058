from typing import Iterator
from path_carver.core.grid import Grid, Shape
from path_carver.core.events import EventReader, EVT_RESET, EVT_TILE, EVT_STALL


class EventAdapter:
    """
    Adapts an EventReader stream to look like a Generator for the Renderer.
    Applies changes to the Grid as it iterates.
    """
    def __init__(self, grid: Grid, reader: EventReader, batch: int = 1):
        self.grid = grid
        self.reader = reader
        self.batch = batch

        self.tile_count = 0
        self.stall_count = 0
        self.reset_count = 0

    def run(self) -> Iterator[str]:
        count = 0
        for type_code, data in self.reader.stream_events():
            count += 1

            if type_code == EVT_TILE:
                x, y, shape = data
                self.grid.set(x, y, Shape(shape))
                self.tile_count += 1

            elif type_code == EVT_RESET:
                self.grid.reset()
                self.reset_count += 1

            elif type_code == EVT_STALL:
                self.stall_count += 1

            if count % self.batch == 0:
                yield "Replay"

        yield "Done"

    def run_all(self):
        for _ in self.run():
            pass
