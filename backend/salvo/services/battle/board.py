import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

BOARD_SIZE = 10
DEFAULT_FLEET: Tuple[int, ...] = (5, 4, 3, 3, 2)

WATER = 0
# Negated ship ids mark hits, so the miss sentinel must stay below -max_ship_id
MISS = -10
MAX_SHIPS = -MISS - 1

Cell = Tuple[int, int]


@dataclass
class Ship:
    id: int
    cells: List[Cell] = field(default_factory=list)
    hits: int = 0

    @property
    def length(self) -> int:
        return len(self.cells)

    @property
    def sunk(self) -> bool:
        return self.hits == self.length

    def register_hit(self) -> bool:
        """Count one more hit and return whether the ship is now sunk."""
        if self.sunk:
            raise ValueError(f"ship {self.id} is already sunk")
        self.hits += 1
        return self.sunk


class Board:
    """A square grid of cell values plus per-ship hit accounting.

    Cell values: ``0`` water, ``k > 0`` ship ``k``, ``-k`` a hit on ship ``k``
    and ``MISS`` for a shot that landed in water.
    """

    def __init__(self, size: int = BOARD_SIZE):
        self.size = size
        self.grid: List[List[int]] = [[WATER] * size for _ in range(size)]
        self.ships: Dict[int, Ship] = {}

    @classmethod
    def from_grid(cls, rows: Sequence[Sequence[int]]) -> 'Board':
        """Build a board from an existing grid of untouched ship ids."""
        board = cls(size=len(rows))
        for r, row in enumerate(rows):
            if len(row) != board.size:
                raise ValueError('grid must be square')
            for c, value in enumerate(row):
                if value < 0:
                    raise ValueError('grid must not contain shots')
                if value > MAX_SHIPS:
                    raise ValueError(f'ship id {value} collides with the miss marker')
                board.grid[r][c] = value
                if value:
                    board.ships.setdefault(value, Ship(id=value)).cells.append((r, c))
        return board

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def can_place(self, row: int, col: int, horizontal: bool, length: int) -> bool:
        for i in range(length):
            r, c = (row, col + i) if horizontal else (row + i, col)
            if not self.in_bounds(r, c):
                return False
            if self.grid[r][c] != WATER:
                return False
        return True

    def place(self, fleet: Sequence[int] = DEFAULT_FLEET, rng: Optional[random.Random] = None) -> None:
        """Randomly place every ship of ``fleet`` in order.

        Retries each ship until a sampled run fits in bounds on open water.
        Only validity is guaranteed, not a uniform choice among layouts.
        """
        if len(self.ships) + len(fleet) > MAX_SHIPS:
            raise ValueError(f'a board holds at most {MAX_SHIPS} ships')
        for length in fleet:
            if not 0 < length <= self.size:
                raise ValueError(f'ship length {length} does not fit a {self.size}x{self.size} board')
        rng = rng or random.Random()
        ship_id = len(self.ships) + 1
        for length in fleet:
            while True:
                horizontal = rng.randrange(2) == 0
                row = rng.randrange(self.size)
                col = rng.randrange(self.size)
                if self.can_place(row, col, horizontal, length):
                    break
            ship = Ship(id=ship_id)
            for i in range(length):
                r, c = (row, col + i) if horizontal else (row + i, col)
                self.grid[r][c] = ship_id
                ship.cells.append((r, c))
            self.ships[ship_id] = ship
            ship_id += 1

    def shot_at(self, row: int, col: int) -> int:
        return self.grid[row][col]

    def mark_hit(self, row: int, col: int) -> Ship:
        ship = self.ships[self.grid[row][col]]
        self.grid[row][col] = -ship.id
        ship.register_hit()
        return ship

    def mark_miss(self, row: int, col: int) -> None:
        self.grid[row][col] = MISS

    def all_sunk(self) -> bool:
        return all(ship.sunk for ship in self.ships.values())

    def occupied_cells(self) -> int:
        return sum(ship.length for ship in self.ships.values())

    def live_cells(self) -> int:
        return sum(1 for row in self.grid for value in row if value > 0)

    def snapshot(self) -> List[List[int]]:
        return [list(row) for row in self.grid]

    def render(self) -> str:
        lines = ['   ' + ' '.join(str(c) for c in range(self.size))]
        for r, row in enumerate(self.grid):
            cells = []
            for value in row:
                if value == WATER:
                    cells.append('.')
                elif value == MISS:
                    cells.append('o')
                elif value < 0:
                    cells.append('x')
                else:
                    cells.append(str(value))
            lines.append(f'{r:>2} ' + ' '.join(cells))
        return '\n'.join(lines)
