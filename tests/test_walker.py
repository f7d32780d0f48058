import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from path_carver.core.grid import Grid, Shape, Direction
from path_carver.core.errors import Stalled
from path_carver.algo.walker import WalkerState, step, choose_direction, check_current_direction
from scripted import ScriptedRandom


def walk(grid, state, rng):
    results = []
    while not state.is_finished(grid):
        result = step(grid, state, rng)
        results.append(result)
        state = result.state
    return state, results


class TestStepBasics(unittest.TestCase):
    def test_straight_line_without_turns(self):
        grid = Grid(5, 5)
        state, results = walk(grid, WalkerState.start(2), ScriptedRandom())

        self.assertEqual(len(results), 5)
        self.assertEqual((state.x, state.y), (2, 5))
        for y in range(5):
            for x in range(5):
                expected = Shape.STRAIGHT if x == 2 else Shape.EMPTY
                self.assertEqual(grid.get_shape(x, y), expected)
        self.assertEqual(results[-1].writes, ((2, 4, Shape.STRAIGHT),))

    def test_initial_state(self):
        state = WalkerState.start(3)
        self.assertEqual((state.x, state.y), (3, 0))
        self.assertEqual(state.direction, Direction.DOWN)
        self.assertEqual(state.persistence, 0)
        self.assertFalse(state.forced)
        self.assertFalse(state.resume_left or state.resume_right)

    def test_step_returns_new_state(self):
        grid = Grid(5, 5)
        state = WalkerState.start(1)
        result = step(grid, state, ScriptedRandom())
        # The input value is never mutated
        self.assertEqual(state, WalkerState.start(1))
        self.assertEqual((result.state.x, result.state.y), (1, 1))

    def test_persistence_cap_forces_turn(self):
        grid = Grid(9, 20)
        rng = ScriptedRandom()  # never asks for a turn
        state = WalkerState.start(4)
        for _ in range(8):
            state = step(grid, state, rng).state
        self.assertEqual((state.x, state.y, state.persistence), (4, 8, 8))

        result = step(grid, state, rng)
        self.assertEqual(result.writes, ((4, 8, Shape.DOWN_TO_RIGHT), (5, 8, Shape.LEFT_RIGHT)))
        self.assertEqual(result.state.direction, Direction.RIGHT)
        self.assertEqual((result.state.x, result.state.y), (5, 8))
        self.assertEqual(result.state.persistence, 1)

    def test_turn_left_on_choice_one(self):
        grid = Grid(9, 9)
        state = WalkerState(x=4, y=3, persistence=3)
        result = step(grid, state, ScriptedRandom([0.0, 0.5]))
        self.assertEqual(result.writes, ((4, 3, Shape.DOWN_TO_LEFT), (3, 3, Shape.LEFT_RIGHT)))
        self.assertEqual(result.state.direction, Direction.LEFT)

    def test_choose_direction_keeps_short_runs(self):
        rng = ScriptedRandom([0.0])
        state, turn = choose_direction(WalkerState(x=0, y=0, persistence=2), rng)
        self.assertFalse(turn)
        self.assertEqual(state.persistence, 3)
        self.assertEqual(rng.draws, 0)

    def test_choose_direction_forced(self):
        state, turn = choose_direction(WalkerState(x=0, y=0, persistence=0, forced=True), ScriptedRandom())
        self.assertTrue(turn)
        self.assertFalse(state.forced)
        self.assertEqual(state.persistence, 1)


class TestBoundaries(unittest.TestCase):
    def test_forced_turn_at_left_edge(self):
        grid = Grid(5, 10)
        grid.set(1, 2, Shape.LEFT_RIGHT)
        grid.set(0, 2, Shape.LEFT_RIGHT)
        state = WalkerState(x=0, y=2, direction=Direction.LEFT, persistence=2, shape=Shape.LEFT_RIGHT)

        result = step(grid, state, ScriptedRandom())
        self.assertEqual(result.overlap, (0, 2))
        # No cell left of column 0: the run ends by dropping down
        self.assertEqual(result.writes, ((0, 2, Shape.LEFT_TO_DOWN), (0, 3, Shape.STRAIGHT)))
        self.assertEqual(result.state.direction, Direction.DOWN)
        self.assertEqual((result.state.x, result.state.y), (0, 4))

        state = result.state
        for _ in range(2):
            state = step(grid, state, ScriptedRandom()).state
        self.assertEqual(state.persistence, 3)

        # Next lateral leg can only head right
        result = step(grid, state, ScriptedRandom([0.0]))
        self.assertEqual(result.writes[0], (0, 6, Shape.DOWN_TO_RIGHT))
        self.assertEqual(result.state.direction, Direction.RIGHT)

    def test_check_refuses_visited_cell(self):
        grid = Grid(5, 5)
        grid.set(2, 1, Shape.LEFT_RIGHT)
        grid.set(3, 1, Shape.LEFT_RIGHT)
        state = WalkerState(x=3, y=1, direction=Direction.LEFT)
        new_state, overlap = check_current_direction(grid, state)
        self.assertTrue(new_state.forced)
        self.assertEqual(overlap, (3, 1))
        self.assertEqual(new_state.x, 3)

    def test_right_edge(self):
        grid = Grid(4, 6)
        grid.set(3, 1, Shape.LEFT_RIGHT)
        state = WalkerState(x=3, y=1, direction=Direction.RIGHT, persistence=1, shape=Shape.LEFT_RIGHT)
        result = step(grid, state, ScriptedRandom())
        self.assertEqual(result.writes[0], (3, 1, Shape.RIGHT_TO_DOWN))
        self.assertEqual(result.state.direction, Direction.DOWN)

    def test_narrow_grid_never_stalls(self):
        grid = Grid(1, 12)
        state, results = walk(grid, WalkerState.start(0), ScriptedRandom(default=0.0))
        self.assertFalse(any(r.stalled for r in results))
        self.assertEqual([grid.get_shape(0, y) for y in range(12)], [Shape.STRAIGHT] * 12)


class TestClimb(unittest.TestCase):
    def setUp(self):
        self.grid = Grid(9, 9)
        self.grid.set(6, 4, Shape.LEFT_RIGHT)
        self.grid.set(5, 4, Shape.LEFT_RIGHT)
        self.state = WalkerState(x=5, y=4, direction=Direction.LEFT, persistence=3, shape=Shape.LEFT_RIGHT)

    def test_climb_from_left_run(self):
        result = step(self.grid, self.state, ScriptedRandom([0.0, 0.0]))
        self.assertEqual(result.writes, ((4, 4, Shape.DOWN_TO_RIGHT), (4, 3, Shape.STRAIGHT)))
        self.assertEqual(result.state.direction, Direction.UP)
        self.assertTrue(result.state.resume_left)
        self.assertFalse(result.state.resume_right)
        self.assertEqual((result.state.x, result.state.y), (4, 3))

    def test_climb_needs_open_doorway(self):
        self.grid.set(3, 3, Shape.STRAIGHT)
        result = step(self.grid, self.state, ScriptedRandom([0.0, 0.0]))
        # Choice 0 without a doorway ends the lateral run instead
        self.assertEqual(result.writes[0], (4, 4, Shape.LEFT_TO_DOWN))
        self.assertEqual(result.state.direction, Direction.DOWN)

    def test_resume_after_blocked_climb(self):
        state = step(self.grid, self.state, ScriptedRandom([0.0, 0.0])).state
        self.grid.set(4, 2, Shape.STRAIGHT)

        result = step(self.grid, state, ScriptedRandom())
        self.assertEqual(result.overlap, (4, 3))
        self.assertEqual(result.writes, ((4, 3, Shape.RIGHT_TO_DOWN), (3, 3, Shape.LEFT_RIGHT)))
        self.assertEqual(result.state.direction, Direction.LEFT)
        self.assertFalse(result.state.resume_left)

    def test_climb_continues_while_diagonal_open(self):
        state = step(self.grid, self.state, ScriptedRandom([0.0, 0.0])).state
        result = step(self.grid, state, ScriptedRandom())
        self.assertEqual(result.writes, ((4, 2, Shape.STRAIGHT),))
        self.assertEqual(result.state.direction, Direction.UP)


class TestStall(unittest.TestCase):
    def boxed_grid(self):
        grid = Grid(9, 9)
        grid.set(3, 3, Shape.LEFT_RIGHT)
        grid.set(5, 3, Shape.LEFT_RIGHT)
        return grid

    def test_boxed_walker_escapes_down(self):
        grid = self.boxed_grid()
        result = step(grid, WalkerState(x=4, y=3, persistence=3), ScriptedRandom([0.0]))
        self.assertTrue(result.stalled)
        self.assertEqual(result.writes, ((4, 3, Shape.STRAIGHT),))
        self.assertEqual(result.state.direction, Direction.DOWN)
        self.assertEqual(result.state.y, 4)

    def test_boxed_walker_strict(self):
        grid = self.boxed_grid()
        with self.assertRaises(Stalled):
            step(grid, WalkerState(x=4, y=3, persistence=3), ScriptedRandom([0.0]), strict=True)

    def test_never_descends_into_corridor(self):
        grid = Grid(5, 8)
        grid.set(2, 4, Shape.LEFT_RIGHT)
        result = step(grid, WalkerState(x=2, y=3), ScriptedRandom())
        self.assertTrue(result.stalled)
        self.assertTrue(result.state.forced)
        self.assertEqual(result.state.y, 3)

        # The forced turn rewrites the cell it is standing on as a corner
        result = step(grid, result.state, ScriptedRandom())
        self.assertEqual(result.writes, ((2, 3, Shape.DOWN_TO_RIGHT), (3, 3, Shape.LEFT_RIGHT)))

    def test_boxed_while_climbing(self):
        grid = self.boxed_grid()
        grid.set(4, 2, Shape.STRAIGHT)
        grid.set(4, 3, Shape.STRAIGHT)
        state = WalkerState(x=4, y=3, direction=Direction.UP, persistence=1, resume_left=True)
        # Even the lenient mode cannot leave without re-entering the corridor
        with self.assertRaises(Stalled) as ctx:
            step(grid, state, ScriptedRandom())
        self.assertEqual((ctx.exception.x, ctx.exception.y), (4, 3))

    def test_lateral_run_ends_over_corridor(self):
        grid = Grid(9, 9)
        grid.set(3, 4, Shape.STRAIGHT)
        grid.set(4, 4, Shape.LEFT_RIGHT)
        grid.set(4, 5, Shape.LEFT_RIGHT)
        state = WalkerState(x=4, y=4, direction=Direction.LEFT, persistence=2, shape=Shape.LEFT_RIGHT)
        with self.assertRaises(Stalled):
            step(grid, state, ScriptedRandom())
        # Nothing was rewritten before failing
        self.assertEqual(grid.get_shape(4, 4), Shape.LEFT_RIGHT)

    def test_descend_block_strict(self):
        grid = Grid(5, 8)
        grid.set(2, 4, Shape.LEFT_RIGHT)
        with self.assertRaises(Stalled):
            step(grid, WalkerState(x=2, y=3), ScriptedRandom(), strict=True)


if __name__ == '__main__':
    unittest.main()
