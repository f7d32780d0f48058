import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from path_carver.core.errors import Stalled
from path_carver.core.grid import Direction, Grid, Shape

# Straight runs are at least MIN_RUN cells before a random turn is allowed,
# and a turn is mandatory once a run grows past MAX_RUN.
MIN_RUN = 3
MAX_RUN = 7

# Scales of the floor(random() * k) draws
TURN_SCALE = 1.99
CHOICE_SCALE = 2.99

Write = Tuple[int, int, Shape]


@dataclass(frozen=True)
class WalkerState:
    x: int
    y: int
    direction: Direction = Direction.DOWN
    persistence: int = 0
    forced: bool = False
    resume_left: bool = False
    resume_right: bool = False
    # Shape written at (x, y) at the end of the next step
    shape: Shape = Shape.STRAIGHT

    @classmethod
    def start(cls, x: int) -> "WalkerState":
        return cls(x=x, y=0)

    def is_finished(self, grid: Grid) -> bool:
        return self.y > grid.height - 1


@dataclass(frozen=True)
class StepResult:
    state: WalkerState
    writes: Tuple[Write, ...]
    stalled: bool = False
    # Cell the walker bumped against; renderers may nudge it to avoid overlap
    overlap: Optional[Tuple[int, int]] = None


def _commit(grid: Grid, writes: List[Write], x: int, y: int, shape: Shape):
    grid.set(x, y, shape)
    writes.append((x, y, shape))


def _can_resume(grid: Grid, state: WalkerState) -> bool:
    x, y = state.x, state.y
    return (state.resume_left and grid.is_free(x - 1, y - 1)) or \
           (state.resume_right and grid.is_free(x + 1, y - 1))


def check_current_direction(grid: Grid, state: WalkerState) -> Tuple[WalkerState, Optional[Tuple[int, int]]]:
    """
    Advances one cell along the current direction if that is legal.
    Returns the new state and the overlap hint when the move was refused.
    """
    x, y, d = state.x, state.y, state.direction

    if d == Direction.DOWN:
        return state, None
    if d == Direction.LEFT and grid.is_free(x - 1, y):
        return replace(state, x=x - 1), None
    if d == Direction.RIGHT and grid.is_free(x + 1, y):
        return replace(state, x=x + 1), None
    if d == Direction.UP and grid.is_free(x, y - 1) and _can_resume(grid, state):
        return replace(state, y=y - 1), None

    return replace(state, forced=True), (x, y)


def choose_direction(state: WalkerState, rng) -> Tuple[WalkerState, bool]:
    """Returns (state, turn) where turn tells whether the walker changes direction now."""
    if state.persistence < MIN_RUN and not state.forced:
        return replace(state, persistence=state.persistence + 1), False

    chance_to_change = math.floor(rng.random() * TURN_SCALE) == 0
    if chance_to_change or state.forced or state.persistence > MAX_RUN:
        return replace(state, persistence=1, forced=False), True

    return replace(state, persistence=state.persistence + 1), False


def _can_climb(grid: Grid, state: WalkerState) -> bool:
    x, y, d = state.x, state.y, state.direction
    if d == Direction.LEFT:
        room = x - 1 > 0
    elif d == Direction.RIGHT:
        room = x + 1 < grid.width - 1
    else:
        return False
    # The whole doorway above must be open
    return room and grid.is_free(x, y - 1) and grid.is_free(x - 1, y - 1) and grid.is_free(x + 1, y - 1)


def _lateral_candidates(grid: Grid, state: WalkerState, value: int) -> Tuple[Direction, ...]:
    x = state.x
    room_left = x - 1 > 0
    room_right = x + 1 < grid.width - 1

    if (room_left and room_right) or state.resume_left or state.resume_right:
        if (value == 1 and not state.resume_right) or state.resume_left:
            return (Direction.LEFT, Direction.RIGHT)
        return (Direction.RIGHT, Direction.LEFT)
    if room_left:
        return (Direction.LEFT,)
    if room_right:
        return (Direction.RIGHT,)
    return ()


def change_direction(grid: Grid, state: WalkerState, rng, writes: List[Write],
                     strict: bool = False) -> Tuple[WalkerState, bool]:
    """
    Turns the walker, writing the corner piece of the cell it turns in.
    Returns (state, stalled).
    """
    value = math.floor(rng.random() * CHOICE_SCALE)
    x, y, d = state.x, state.y, state.direction

    # Occasional climb out of a lateral run, resumed in the same direction later
    if value == 0 and _can_climb(grid, state):
        _commit(grid, writes, x, y, Shape.DOWN_TO_RIGHT if d == Direction.LEFT else Shape.DOWN_TO_LEFT)
        return replace(
            state,
            direction=Direction.UP,
            y=y - 1,
            shape=Shape.STRAIGHT,
            resume_left=d == Direction.LEFT,
            resume_right=d == Direction.RIGHT,
        ), False

    # A lateral run always ends by dropping one row
    if d in (Direction.LEFT, Direction.RIGHT):
        if y + 1 <= grid.height - 1 and not grid.is_free(x, y + 1):
            raise Stalled(x, y, "no free cell below the end of a lateral run")
        _commit(grid, writes, x, y, Shape.LEFT_TO_DOWN if d == Direction.LEFT else Shape.RIGHT_TO_DOWN)
        return replace(state, direction=Direction.DOWN, y=y + 1, shape=Shape.STRAIGHT), False

    candidates = _lateral_candidates(grid, state, value)
    for side in candidates:
        nx = x - 1 if side == Direction.LEFT else x + 1
        if grid.is_free(nx, y):
            break
    else:
        return _boxed(grid, state, blocked=bool(candidates), strict=strict)

    if d == Direction.UP:
        corner = Shape.RIGHT_TO_DOWN if side == Direction.LEFT else Shape.LEFT_TO_DOWN
    else:
        corner = Shape.DOWN_TO_LEFT if side == Direction.LEFT else Shape.DOWN_TO_RIGHT
    _commit(grid, writes, x, y, corner)

    return replace(
        state,
        x=nx,
        direction=side,
        shape=Shape.LEFT_RIGHT,
        resume_left=False,
        resume_right=False,
    ), False


def _boxed(grid: Grid, state: WalkerState, blocked: bool, strict: bool) -> Tuple[WalkerState, bool]:
    # No lateral exit: escape downward if the cell below is still open
    x, y = state.x, state.y
    if state.direction == Direction.UP:
        raise Stalled(x, y, "climbing with no lateral exit")
    if grid.is_visited(x, y) and y + 1 <= grid.height - 1 and not grid.is_free(x, y + 1):
        raise Stalled(x, y, "no lateral or downward exit")
    if blocked and strict:
        raise Stalled(x, y, "both lateral neighbours already carved")
    return replace(state, shape=Shape.STRAIGHT, resume_left=False, resume_right=False), blocked


def step(grid: Grid, state: WalkerState, rng, strict: bool = False) -> StepResult:
    """
    Runs one step of the carving state machine.
    rng only needs a random() method returning a float in [0, 1).
    With strict=True a boxed-in walker raises Stalled instead of escaping.
    """
    writes: List[Write] = []
    stalled = False

    state, overlap = check_current_direction(grid, state)
    state, turn = choose_direction(state, rng)
    if turn:
        state, stalled = change_direction(grid, state, rng, writes, strict=strict)

    if state.y <= grid.height - 1:
        _commit(grid, writes, state.x, state.y, state.shape)

    if state.direction == Direction.DOWN:
        nxt = state.y + 1
        if nxt <= grid.height - 1 and not grid.is_free(state.x, nxt):
            # Never descend into the corridor; stay put and turn on the next step
            if strict:
                raise Stalled(state.x, state.y, "cell below already carved")
            state = replace(state, forced=True)
            stalled = True
        else:
            state = replace(state, y=nxt)

    return StepResult(state=state, writes=tuple(writes), stalled=stalled, overlap=overlap)
