import logging
import random
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from path_carver.algo.base import Generator, RunToken
from path_carver.algo.walker import StepResult, WalkerState, step
from path_carver.core.errors import Stalled
from path_carver.core.grid import Grid

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    run_id: int
    start_x: int
    end: Optional[Tuple[int, int]]
    steps: int
    stalls: int
    completed: bool


class CorridorGenerator(Generator):
    """
    Carves one winding corridor from a random top-row cell down to the bottom row.

    run() returns an iterator that performs exactly one walker step per next().
    The host paces it (a renderer frame, a sleep, ...). regenerate() cancels the
    live run before resetting the grid, so a suspended iterator of the old run
    never touches the grid again.
    """

    def __init__(self, grid: Grid, seed: int = None, strict: bool = False):
        super().__init__(grid, seed)
        self.rng = random.Random(seed)
        self.strict = strict
        # Every step writes a fresh cell or turns in place, so this is never reached by a healthy run
        self.max_steps = 4 * grid.width * grid.height + 16

        self.token: Optional[RunToken] = None
        self.state: Optional[WalkerState] = None
        self.start_x: Optional[int] = None
        self.end: Optional[Tuple[int, int]] = None
        self.stall_count = 0
        self.completed = False
        self._runs = 0

    def cancel(self):
        if self.token is not None and not self.token.cancelled:
            logger.debug(f"Cancelling run #{self.token.run_id}")
            self.token.cancel()

    def run(self) -> Iterator[StepResult]:
        self.cancel()
        self._runs += 1
        self.token = RunToken(self._runs)

        self.start_x = self.rng.randrange(self.grid.width)
        self.state = WalkerState.start(self.start_x)
        self.end = None
        self.step_count = 0
        self.stall_count = 0
        self.completed = False

        logger.info(f"Run #{self._runs}: carving {self.grid.width}x{self.grid.height} from column {self.start_x}")
        return self._carve(self.token, self.state)

    def _carve(self, token: RunToken, state: WalkerState) -> Iterator[StepResult]:
        steps = 0
        while not state.is_finished(self.grid):
            # Resumption point: a cancelled run must not mutate the grid
            if token.cancelled:
                return
            if steps >= self.max_steps:
                raise Stalled(state.x, state.y, f"run exceeded {self.max_steps} steps")

            result = step(self.grid, state, self.rng, strict=self.strict)
            state = result.state
            steps += 1

            if result.writes:
                x, y, _ = result.writes[-1]
                if y == self.grid.height - 1:
                    self.end = (x, y)

            if result.stalled:
                self.stall_count += 1
                if self.grid.event_writer:
                    self.grid.event_writer.log_stall(state.x, state.y)
                logger.warning(f"Run #{token.run_id}: walker boxed in at ({state.x}, {state.y})")

            self.state = state
            self.step_count = steps
            yield result

        if not token.cancelled:
            self.completed = True
            logger.info(f"Run #{token.run_id} done in {steps} steps, exit at {self.end}")

    def regenerate(self) -> Iterator[StepResult]:
        """Cancels the in-flight run, clears the grid and starts a new run."""
        self.cancel()
        self.grid.reset()
        return self.run()

    def summary(self) -> RunSummary:
        return RunSummary(
            run_id=self._runs,
            start_x=self.start_x,
            end=self.end,
            steps=self.step_count,
            stalls=self.stall_count,
            completed=self.completed,
        )

    def run_all(self) -> RunSummary:
        for _ in self.run():
            pass
        return self.summary()
