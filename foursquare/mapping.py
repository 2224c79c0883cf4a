from __future__ import annotations

GRID_SIZE = 3  # squares per side
SQUARE_COUNT = GRID_SIZE * GRID_SIZE
SLOT_COUNT = 4  # 2x2 slots per square


def index_from_row_col(row: int, col: int) -> int:
    return row * GRID_SIZE + col


def index_to_row_col(index: int) -> tuple[int, int]:
    return index // GRID_SIZE, index % GRID_SIZE


def square_row(square_index: int) -> int:
    return square_index // GRID_SIZE


def square_col(square_index: int) -> int:
    return square_index % GRID_SIZE


def slot_row(slot_index: int) -> int:
    return slot_index // 2


def slot_col(slot_index: int) -> int:
    return slot_index % 2


def slot_index_from_row_col(row: int, col: int) -> int:
    return row * 2 + col


def global_to_square_slot(r: int, c: int) -> tuple[int, int]:
    """Map a cell of the global 6x6 slot grid to (squareIndex, slotIndex)."""
    return index_from_row_col(r // 2, c // 2), slot_index_from_row_col(r % 2, c % 2)


def neighbors(index: int) -> list[int]:
    """Orthogonal neighbours of a square, in up/down/left/right order."""
    row, col = index_to_row_col(index)
    out: list[int] = []
    for dr, dc in [(-1, 0), (1, 0), (0, -1), (0, 1)]:
        r, c = row + dr, col + dc
        if 0 <= r < GRID_SIZE and 0 <= c < GRID_SIZE:
            out.append(index_from_row_col(r, c))
    return out
