import random
from dataclasses import replace

import pytest

from foursquare.game_logic import (
    DRAW_NO_LEGAL_SLIDES,
    GameState,
    IllegalMove,
    Phase,
    PressSlot,
    Restart,
    apply_place,
    apply_slide,
    legal_actions,
    legal_place_targets,
    legal_slide_squares,
    new_state,
    reducer,
    remaining_pieces,
    to_public_json,
)
from foursquare.rules import PlayerColor, check_winner


def board_with(cells: dict) -> tuple:
    board = [[None, None, None, None] for _ in range(9)]
    for (sq, sl), value in cells.items():
        board[sq][sl] = value
    return tuple(tuple(square) for square in board)


def make_state(**overrides):
    s = replace(new_state(pieces_per_player=overrides.pop("pieces_per_player", 4)), **overrides)
    return replace(s, legalSlides=tuple(legal_slide_squares(s)))


def test_new_game_defaults() -> None:
    s = new_state()
    assert s.holeSquareIndex == 4
    assert s.phase == Phase.placement
    assert s.currentPlayer == PlayerColor.R
    assert s.placed[PlayerColor.R] == 0
    assert s.placed[PlayerColor.B] == 0
    assert s.lastMovedSquareIndex is None
    assert s.selectedSquareIndex is None
    assert s.winner is None and s.drawReason is None
    assert s.legalSlides == (1, 7, 3, 5)


@pytest.mark.parametrize("pieces", [0, -1, 17])
def test_new_game_rejects_bad_piece_count(pieces: int) -> None:
    with pytest.raises(ValueError):
        new_state(pieces_per_player=pieces)


def test_place_then_requires_slide_same_player() -> None:
    s = new_state(pieces_per_player=1)
    s = apply_place(s, squareIndex=0, slotIndex=3, player=PlayerColor.R)
    assert s.phase == Phase.placementSlide
    assert s.currentPlayer == PlayerColor.R
    assert s.winner is None

    with pytest.raises(IllegalMove):
        # cannot place again; must slide
        apply_place(s, squareIndex=0, slotIndex=2, player=PlayerColor.R)


def test_reducer_returns_new_state_without_touching_old() -> None:
    s0 = new_state()
    s1 = reducer(s0, PressSlot(0, 0))
    assert s1 is not s0
    assert s0.board[0][0] is None
    assert s0.placed[PlayerColor.R] == 0
    assert s1.board[0][0] == "R"
    assert s1.placed[PlayerColor.R] == 1


def test_slide_swaps_square_contents_and_moves_hole() -> None:
    s = new_state(pieces_per_player=1)
    s = apply_place(s, squareIndex=1, slotIndex=0, player=PlayerColor.R)
    assert s.holeSquareIndex == 4

    # slide square 1 into hole 4 (adjacent)
    s = apply_slide(s, squareIndex=1, player=PlayerColor.R)
    assert s.holeSquareIndex == 1
    # piece should have moved with the square into old hole position (4)
    assert s.board[4][0] == "R"
    assert s.board[1] == (None, None, None, None)
    assert s.lastMovedSquareIndex == 4
    assert s.currentPlayer == PlayerColor.B
    assert s.phase == Phase.placement


def test_movement_phase_after_all_pieces_placed() -> None:
    s = new_state(pieces_per_player=1)
    s = apply_place(s, squareIndex=0, slotIndex=0, player=PlayerColor.R)
    s = apply_slide(s, squareIndex=3, player=PlayerColor.R)  # any legal slide
    s = apply_place(s, squareIndex=8, slotIndex=3, player=PlayerColor.B)
    s = apply_slide(s, squareIndex=0, player=PlayerColor.B)
    assert s.phase == Phase.movement
    assert s.currentPlayer == PlayerColor.R
    assert legal_actions(s) == [PressSlot(sq) for sq in s.legalSlides]


def test_win_detection_allows_crossing_four_squares() -> None:
    # 2x2 at global (1,1),(1,2),(2,1),(2,2) touches 4 squares:
    # (1,1)->sq0 slot3 ; (1,2)->sq1 slot2 ; (2,1)->sq3 slot1 ; (2,2)->sq4 slot0
    board = board_with({(0, 3): "R", (1, 2): "R", (3, 1): "R", (4, 0): "R"})
    assert check_winner(board) == PlayerColor.R


def test_slide_only_adjacent_to_hole() -> None:
    s = new_state()
    s = reducer(s, PressSlot(2, 2))
    assert set(legal_slide_squares(s)) == {1, 3, 5, 7}

    with pytest.raises(IllegalMove):
        apply_slide(s, squareIndex=0, player=PlayerColor.R)
    assert reducer(s, PressSlot(0, 0)) is s
    assert reducer(s, PressSlot(4, 0)) is s


def test_cannot_slide_same_square_as_previous_slide() -> None:
    # Reach movement phase quickly (1 piece each), then verify backtracking is blocked.
    s = new_state(pieces_per_player=1)
    s = apply_place(s, squareIndex=0, slotIndex=0, player=PlayerColor.R)
    s = apply_slide(s, squareIndex=3, player=PlayerColor.R)  # hole: 4 -> 3
    s = apply_place(s, squareIndex=8, slotIndex=0, player=PlayerColor.B)
    s = apply_slide(s, squareIndex=0, player=PlayerColor.B)  # hole: 3 -> 0 (movement starts, R turn)
    assert s.phase == Phase.movement
    assert s.currentPlayer == PlayerColor.R

    # R slides square 1 into hole 0 => moved square now sits at index 0, and must be blocked next.
    s = apply_slide(s, squareIndex=1, player=PlayerColor.R)  # hole: 0 -> 1
    assert s.currentPlayer == PlayerColor.B
    assert 0 not in s.legalSlides

    # B would normally be able to slide square 0 into hole 1 (immediate backtrack), but it's forbidden.
    with pytest.raises(IllegalMove):
        apply_slide(s, squareIndex=0, player=PlayerColor.B)
    assert reducer(s, PressSlot(0)) is s


def test_placement_rejections_return_same_state() -> None:
    s = reducer(new_state(), PressSlot(0, 0))
    s = reducer(s, PressSlot(1))  # R slides, B to place
    assert s.phase == Phase.placement

    assert reducer(s, PressSlot(s.holeSquareIndex, 0)) is s
    occupied = next((sq, sl) for sq in range(9) for sl in range(4) if s.board[sq][sl] is not None)
    assert reducer(s, PressSlot(*occupied)) is s
    assert reducer(s, PressSlot(9, 0)) is s
    assert reducer(s, PressSlot(0, 4)) is s
    assert reducer(s, PressSlot(-1, 0)) is s


def test_cannot_place_when_out_of_pieces() -> None:
    s = make_state(pieces_per_player=1, placed={PlayerColor.R: 1, PlayerColor.B: 0})
    assert legal_place_targets(s) == []
    assert reducer(s, PressSlot(0, 0)) is s
    with pytest.raises(IllegalMove):
        apply_place(s, squareIndex=0, slotIndex=0, player=PlayerColor.R)


def test_checked_api_rejects_wrong_player_and_phase() -> None:
    s = new_state()
    with pytest.raises(IllegalMove, match="not your turn"):
        apply_place(s, squareIndex=0, slotIndex=0, player=PlayerColor.B)
    with pytest.raises(IllegalMove, match="cannot slide"):
        apply_slide(s, squareIndex=1, player=PlayerColor.R)
    with pytest.raises(IllegalMove, match="out of bounds"):
        apply_place(s, squareIndex=0, slotIndex=7, player=PlayerColor.R)


def test_place_completing_block_across_squares_wins_without_slide() -> None:
    # square0 slots {1,3} and square1 slot 0 hold R; square1 slot 2 completes
    # the window at global rows 0-1, cols 1-2.
    board = board_with({(0, 1): "R", (0, 3): "R", (1, 0): "R", (6, 0): "B", (7, 1): "B", (8, 3): "B"})
    s = make_state(board=board, placed={PlayerColor.R: 3, PlayerColor.B: 3})
    assert check_winner(s.board) is None

    s = reducer(s, PressSlot(1, 2))
    assert s.winner == PlayerColor.R
    assert s.phase == Phase.placement
    assert s.currentPlayer == PlayerColor.R
    assert s.placed[PlayerColor.R] == 4
    assert s.selectedSquareIndex is None
    assert s.legalSlides == ()
    assert legal_actions(s) == []


def test_terminal_state_rejects_press() -> None:
    s = make_state(winner=PlayerColor.B)
    assert reducer(s, PressSlot(0, 0)) is s
    s = make_state(drawReason=DRAW_NO_LEGAL_SLIDES)
    assert reducer(s, PressSlot(0, 0)) is s
    with pytest.raises(IllegalMove, match="finished"):
        apply_place(s, squareIndex=0, slotIndex=0, player=PlayerColor.R)


def test_slide_that_completes_block_wins() -> None:
    # Sliding square 3 into the center puts R at global (2,2),(2,3) under R at (1,2),(1,3).
    board = board_with({(1, 2): "R", (1, 3): "R", (3, 0): "R", (3, 1): "R", (8, 0): "B", (8, 3): "B", (6, 1): "B"})
    s = make_state(board=board, phase=Phase.placementSlide, placed={PlayerColor.R: 4, PlayerColor.B: 3})
    s = reducer(s, PressSlot(3))
    assert s.winner == PlayerColor.R
    assert s.currentPlayer == PlayerColor.R
    assert s.holeSquareIndex == 3
    assert s.lastMovedSquareIndex == 4


def test_movement_take_back_and_neighbors() -> None:
    s = make_state(
        pieces_per_player=1,
        phase=Phase.movement,
        placed={PlayerColor.R: 1, PlayerColor.B: 1},
        board=board_with({(0, 0): "R", (8, 3): "B"}),
        lastMovedSquareIndex=1,
    )
    assert reducer(s, PressSlot(1)) is s
    for sq in (3, 5, 7):
        nxt = reducer(s, PressSlot(sq))
        assert nxt is not s
        assert nxt.holeSquareIndex == sq
        assert nxt.lastMovedSquareIndex == 4
        assert nxt.phase == Phase.movement
        assert nxt.currentPlayer == PlayerColor.B


def test_restart_keeps_pieces_per_player() -> None:
    s = new_state(pieces_per_player=3)
    s = reducer(s, PressSlot(0, 0))
    s = reducer(s, PressSlot(1))
    s = reducer(s, Restart())
    assert s.placed == {PlayerColor.R: 0, PlayerColor.B: 0}
    assert s.phase == Phase.placement
    assert s.winner is None and s.drawReason is None
    assert s.piecesPerPlayer == 3
    assert s.holeSquareIndex == 4

    done = make_state(pieces_per_player=2, winner=PlayerColor.R)
    again = reducer(done, Restart())
    assert again.winner is None
    assert again.piecesPerPlayer == 2


def test_random_playouts_keep_invariants() -> None:
    rng = random.Random(7)
    for _ in range(30):
        s = new_state(pieces_per_player=rng.randint(1, 8))
        for _ in range(80):
            actions = legal_actions(s)
            if not actions:
                break
            nxt = reducer(s, rng.choice(actions))
            assert nxt is not s
            s = nxt

            filled = sum(1 for square in s.board for slot in square if slot is not None)
            assert s.placed[PlayerColor.R] + s.placed[PlayerColor.B] == filled
            assert s.placed[PlayerColor.R] <= s.piecesPerPlayer
            assert s.placed[PlayerColor.B] <= s.piecesPerPlayer
            assert s.board[s.holeSquareIndex] == (None, None, None, None)
            assert s.selectedSquareIndex is None
            if s.phase == Phase.placement and not s.is_over:
                assert sum(s.placed.values()) < 2 * s.piecesPerPlayer
            if not s.is_over:
                assert s.legalSlides == tuple(legal_slide_squares(s))
        # the base rules never run out of slides on a 3x3 grid
        assert s.drawReason is None


def test_public_json_shape() -> None:
    s = reducer(new_state(), PressSlot(0, 0))
    out = to_public_json(s)
    assert out["phase"] == "placementSlide"
    assert out["currentPlayer"] == "R"
    assert out["placed"] == {"R": 1, "B": 0}
    assert out["board"][0] == ["R", None, None, None]
    assert out["legalSlides"] == [1, 7, 3, 5]
    assert out["lastMovedSquareIndex"] is None
    assert remaining_pieces(s, PlayerColor.R) == 3


def test_constructed_state_derives_legal_slides() -> None:
    s = GameState(
        board=board_with({(0, 0): "R", (0, 1): "R", (2, 1): "R", (6, 2): "R", (3, 3): "B", (5, 0): "B", (8, 2): "B", (8, 3): "B"}),
        phase=Phase.movement,
        currentPlayer=PlayerColor.R,
        placed={PlayerColor.R: 4, PlayerColor.B: 4},
        piecesPerPlayer=4,
        holeSquareIndex=4,
        lastMovedSquareIndex=1,
    )
    assert s.legalSlides == (7, 3, 5)
    assert legal_actions(s) == [PressSlot(7), PressSlot(3), PressSlot(5)]
    for action in legal_actions(s):
        assert reducer(s, action) is not s

    over = GameState(
        board=s.board,
        phase=Phase.movement,
        currentPlayer=PlayerColor.R,
        placed=s.placed,
        piecesPerPlayer=4,
        holeSquareIndex=4,
        winner=PlayerColor.B,
    )
    assert over.legalSlides == ()
    assert legal_actions(over) == []


def test_placed_counts_are_read_only_and_not_shared() -> None:
    counts = {PlayerColor.R: 0, PlayerColor.B: 0}
    s = replace(new_state(), placed=counts)
    counts[PlayerColor.R] = 3
    assert s.placed[PlayerColor.R] == 0
    with pytest.raises(TypeError):
        s.placed[PlayerColor.R] = 1  # type: ignore[index]

    nxt = reducer(s, PressSlot(0, 0))
    assert nxt.placed[PlayerColor.R] == 1
    assert s.placed[PlayerColor.R] == 0
