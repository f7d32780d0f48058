import logging
import pygame
from path_carver.core.grid import Grid, Shape, SHAPE_EDGES
from path_carver.viz.recorder import VideoRecorder

logger = logging.getLogger(__name__)

# Segment endpoints as fractions of a cell, measured from its top-left corner
EDGE_ANCHORS = {
    "N": (0.5, 0.0),
    "S": (0.5, 1.0),
    "E": (1.0, 0.5),
    "W": (0.0, 0.5),
}


class Renderer:
    """
    Live preview of a carve. Each frame advances the attached generator by as
    many steps as the pacing delay allows, then redraws the whole grid.
    Space regenerates, Escape quits.
    """
    COLOR_BG = (10, 10, 10)
    COLOR_EMPTY = (40, 40, 40)
    COLOR_VISITED = (60, 100, 160)
    COLOR_PATH = (255, 215, 0)
    COLOR_WALKER = (220, 60, 60)
    COLOR_TEXT = (255, 255, 255)

    PADDING = 40
    # Fraction of a cell an overlapping tile is nudged down by
    OVERLAP_NUDGE = 0.3

    def __init__(self, grid: Grid, generator=None, width=1280, height=720, record=False, step_delay=0.05):
        self.grid = grid
        self.generator = generator
        self.screen_width = width
        self.screen_height = height
        self.step_delay = step_delay

        self.cell_size = 20.0
        self.origin = (0.0, 0.0)

        self.recorder = VideoRecorder(active=record)

        self.font = None
        self.clock = None
        self.surface = None
        self.running = True

        self.gen_iter = None
        self.gen_finished = False
        self.elapsed = 0.0
        self.walker_pos = None
        # Cells the walker bumped into, drawn slightly lowered
        self.nudged = set()

    def fit_to_screen(self):
        """Largest cell size that shows the whole grid, centred in the window."""
        usable_w = self.screen_width - 2 * self.PADDING
        usable_h = self.screen_height - 2 * self.PADDING
        self.cell_size = min(usable_w / self.grid.width, usable_h / self.grid.height)
        self.origin = (
            (self.screen_width - self.grid.width * self.cell_size) / 2,
            (self.screen_height - self.grid.height * self.cell_size) / 2,
        )

    def init_window(self):
        pygame.init()
        pygame.display.set_caption(f"Path Carver - {self.grid.width}x{self.grid.height} (Space: regenerate)")
        self.surface = pygame.display.set_mode((self.screen_width, self.screen_height), pygame.RESIZABLE)
        self.clock = pygame.time.Clock()
        self.font = pygame.font.SysFont("Consolas", 16)
        self.fit_to_screen()

    def cell_rect(self, x: int, y: int):
        ox, oy = self.origin
        px = ox + x * self.cell_size
        py = oy + y * self.cell_size
        if (x, y) in self.nudged:
            py += self.cell_size * self.OVERLAP_NUDGE
        return px, py

    def start(self):
        if self.generator:
            self.gen_iter = self.generator.run()
            self.gen_finished = False

    def regenerate(self):
        if not hasattr(self.generator, "regenerate"):
            return
        logger.info("Regenerating...")
        self.gen_iter = self.generator.regenerate()
        self.gen_finished = False
        self.elapsed = 0.0
        self.walker_pos = None
        self.nudged.clear()

    def handle_input(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self.running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_SPACE:
                self.regenerate()
            elif event.type == pygame.VIDEORESIZE:
                self.screen_width, self.screen_height = event.w, event.h
                self.fit_to_screen()

    def advance(self, dt: float) -> int:
        """Runs as many generator steps as the pacing delay allows for dt seconds."""
        if not self.gen_iter or self.gen_finished:
            return 0

        self.elapsed += dt
        steps = 0
        while self.elapsed >= self.step_delay:
            self.elapsed -= self.step_delay
            result = next(self.gen_iter, None)
            if result is None:
                self.gen_finished = True
                break
            steps += 1

            # Replays yield plain status strings, carves yield step results
            state = getattr(result, "state", None)
            if state is not None:
                self.walker_pos = (state.x, state.y)
                if result.overlap:
                    self.nudged.add(result.overlap)
            if self.step_delay <= 0:
                break
        return steps

    def draw_segment(self, shape: Shape, px: float, py: float):
        size = self.cell_size
        centre = (px + size / 2, py + size / 2)
        thickness = max(1, int(size / 5))
        for edge in SHAPE_EDGES[shape]:
            fx, fy = EDGE_ANCHORS[edge]
            pygame.draw.line(self.surface, self.COLOR_PATH, centre, (px + fx * size, py + fy * size), thickness)

    def draw_grid(self):
        self.surface.fill(self.COLOR_BG)
        size = self.cell_size
        gap = 1 if size > 6 else 0

        for y, row in enumerate(self.grid.rows()):
            for x, shape in enumerate(row):
                px, py = self.cell_rect(x, y)
                color = self.COLOR_VISITED if self.grid.is_visited(x, y) else self.COLOR_EMPTY
                pygame.draw.rect(self.surface, color, (px, py, size - gap, size - gap))
                if shape != Shape.EMPTY:
                    self.draw_segment(shape, px, py)

        if self.walker_pos and not self.gen_finished and self.grid.in_bounds(*self.walker_pos):
            px, py = self.cell_rect(*self.walker_pos)
            centre = (int(px + size / 2), int(py + size / 2))
            pygame.draw.circle(self.surface, self.COLOR_WALKER, centre, max(2, int(size / 4)))

    def draw_hud(self):
        lines = [
            f"FPS: {int(self.clock.get_fps())}",
            f"Size: {self.grid.width}x{self.grid.height}",
            f"Steps: {getattr(self.generator, 'step_count', 0)}",
            f"Status: {'Done' if self.gen_finished else 'Running'}",
        ]
        if self.recorder.active:
            lines.append("REC")

        for i, text in enumerate(lines):
            label = self.font.render(text, True, self.COLOR_TEXT)
            self.surface.blit(label, (10, 10 + i * 20))

    def run_loop(self):
        if self.gen_iter is None:
            self.start()

        # A failing generator still finalizes the video and closes the window
        try:
            while self.running:
                dt = self.clock.tick(60) / 1000.0
                self.handle_input()
                self.advance(dt)

                self.draw_grid()
                self.draw_hud()
                pygame.display.flip()

                if self.recorder.active:
                    self.recorder.capture_frame(self.surface)
        finally:
            self.recorder.stop()
            pygame.quit()
