from abc import ABC, abstractmethod
from typing import Iterator
from path_carver.core.grid import Grid


class RunToken:
    """Handle of one generator run. Cancelling it turns the pending steps of that run into no-ops."""

    __slots__ = ('run_id', 'cancelled')

    def __init__(self, run_id: int):
        self.run_id = run_id
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class Generator(ABC):
    def __init__(self, grid: Grid, seed: int = None):
        self.grid = grid
        self.seed = seed
        self.step_count = 0

    @abstractmethod
    def run(self) -> Iterator:
        """
        Yields one progress item per step.
        The actual grid modifications happen in-place on self.grid.
        """
        pass

    def run_all(self):
        """Helper to run the generator to completion."""
        for _ in self.run():
            pass
