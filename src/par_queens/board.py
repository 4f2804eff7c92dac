from typing import Optional, Tuple

QUEEN = 1
EMPTY = 0


class Board:
    """
    N×N occupancy grid for a (partial) queen placement.
    Search fills it strictly top-down, so only rows above a candidate cell
    can hold queens when `is_safe` is asked about it.
    """

    def __init__(self, n: int):
        self.n = n
        self._rows = [bytearray(n) for _ in range(n)]

    @classmethod
    def with_first_queen(cls, n: int, col: int) -> "Board":
        board = cls(n)
        board.place(0, col)
        return board

    def is_safe(self, row: int, col: int) -> bool:
        """True if no queen above `row` shares the column or an upward diagonal."""
        n = self.n
        for i in range(row):
            above = self._rows[i]
            distance = row - i
            if above[col]:
                return False
            left = col - distance
            if left >= 0 and above[left]:
                return False
            right = col + distance
            if right < n and above[right]:
                return False
        return True

    def place(self, row: int, col: int) -> None:
        self._rows[row][col] = QUEEN

    def remove(self, row: int, col: int) -> None:
        self._rows[row][col] = EMPTY

    def snapshot(self) -> "Board":
        """Deep copy, decoupled from any later mutation of this board."""
        copy = Board.__new__(Board)
        copy.n = self.n
        copy._rows = [bytearray(r) for r in self._rows]
        return copy

    def cells(self) -> Tuple[Tuple[int, ...], ...]:
        return tuple(tuple(r) for r in self._rows)

    def queen_columns(self) -> Tuple[Optional[int], ...]:
        """Column of the queen in each row, or None for an empty row."""
        return tuple(r.find(QUEEN) if QUEEN in r else None for r in self._rows)

    def queen_count(self) -> int:
        return sum(r.count(QUEEN) for r in self._rows)

    def render(self, queen: str = "Q", empty: str = ".") -> str:
        return "\n".join(
            " ".join(queen if cell else empty for cell in r) for r in self._rows
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self.n == other.n and self._rows == other._rows

    def __hash__(self) -> int:
        # Only meaningful for snapshots; a live board changes hash as it mutates.
        return hash((self.n, tuple(bytes(r) for r in self._rows)))

    def __repr__(self) -> str:
        return f"Board(n={self.n}, queens={self.queen_columns()})"

    def __str__(self) -> str:
        return self.render()
