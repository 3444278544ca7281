import random
from typing import List, Optional

from tambola.models import COLUMNS, NUMBERS_PER_ROW, NUMBERS_PER_TICKET, ROWS, Ticket

MAX_PER_COLUMN = 3


def column_ranges() -> List[range]:
    """Number range for each column: 1-10, 11-20, ..., 71-80, 81-90."""
    ranges = []
    for col in range(COLUMNS):
        start = col * 10 + 1
        ranges.append(range(start, start + 10))
    return ranges


class TicketGenerator:
    """Builds Tambola tickets from an injected random source.

    Pass a seeded ``random.Random`` to get a reproducible sequence of tickets.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def generate(self) -> Ticket:
        ranges = column_ranges()
        counts = self._column_counts()
        drawn = [sorted(self.rng.sample(ranges[col], counts[col])) for col in range(COLUMNS)]
        layout = self._scatter(counts)
        self._balance_rows(layout)

        grid = [[None] * COLUMNS for _ in range(ROWS)]
        for col in range(COLUMNS):
            rows = [r for r in range(ROWS) if layout[r][col]]
            # Ascending top-to-bottom regardless of which rows ended up filled
            for row, number in zip(rows, drawn[col]):
                grid[row][col] = number
        return Ticket.from_grid(grid)

    def _column_counts(self) -> List[int]:
        counts = [0] * COLUMNS
        total = 0
        while total < NUMBERS_PER_TICKET:
            for col in range(COLUMNS):
                if total >= NUMBERS_PER_TICKET:
                    break
                if counts[col] < MAX_PER_COLUMN:
                    counts[col] += 1
                    total += 1
        return counts

    def _scatter(self, counts: List[int]) -> List[List[bool]]:
        layout = [[False] * COLUMNS for _ in range(ROWS)]
        for col, count in enumerate(counts):
            rows = list(range(ROWS))
            self.rng.shuffle(rows)
            for row in rows[:count]:
                layout[row][col] = True
        return layout

    def _balance_rows(self, layout: List[List[bool]]) -> None:
        """Move cells within their column until every row holds five.

        A row with more cells than another always has a column filled in
        the fuller row and empty in the other, so a move is always available
        and column counts never change.
        """
        while True:
            sizes = [sum(row) for row in layout]
            over = [r for r in range(ROWS) if sizes[r] > NUMBERS_PER_ROW]
            if not over:
                return
            src = over[0]
            under = [r for r in range(ROWS) if sizes[r] < NUMBERS_PER_ROW]
            moves = [
                (col, dst)
                for dst in under
                for col in range(COLUMNS)
                if layout[src][col] and not layout[dst][col]
            ]
            col, dst = self.rng.choice(moves)
            layout[src][col] = False
            layout[dst][col] = True

    def generate_many(self, count: int) -> List[Ticket]:
        return [self.generate() for _ in range(count)]
