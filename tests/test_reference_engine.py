import io
import unittest

import chess

from perftharness.reference_engine import ReferenceEngine, perft, perft_divide

START_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"


class PerftTests(unittest.TestCase):
    def test_start_position_counts(self) -> None:
        board = chess.Board()
        self.assertEqual(perft(board, 0), 1)
        self.assertEqual(perft(board, 1), 20)
        self.assertEqual(perft(board, 2), 400)
        self.assertEqual(perft(board, 3), 8902)

    def test_kiwipete_depth_two(self) -> None:
        self.assertEqual(perft(chess.Board(KIWIPETE), 2), 2039)

    def test_divide_sums_to_total(self) -> None:
        divide, total = perft_divide(chess.Board(), 2)
        self.assertEqual(len(divide), 20)
        self.assertEqual(total, 400)
        self.assertTrue(all(nodes == 20 for _, nodes in divide))

    def test_divide_depth_zero(self) -> None:
        self.assertEqual(perft_divide(chess.Board(), 0), ([], 1))

    def test_board_restored_after_perft(self) -> None:
        board = chess.Board()
        perft(board, 2)
        self.assertEqual(board.fen(), START_FEN)


class ReferenceEngineTests(unittest.TestCase):
    def _engine(self, **kwargs) -> tuple[ReferenceEngine, io.BytesIO]:
        out = io.BytesIO()
        return ReferenceEngine(out, **kwargs), out

    def test_position_with_empty_moves_clause(self) -> None:
        engine, _ = self._engine()
        engine.handle(f"position fen {START_FEN} moves ")
        self.assertEqual(engine.board.fen(), START_FEN)

    def test_position_applies_moves(self) -> None:
        engine, _ = self._engine()
        engine.handle(f"position fen {START_FEN} moves e2e4 e7e5")
        self.assertEqual(engine.board.fullmove_number, 2)
        self.assertEqual(engine.board.piece_at(chess.E4), chess.Piece.from_symbol("P"))

    def test_position_startpos(self) -> None:
        engine, _ = self._engine()
        engine.handle("position fen 8/8/8/8/8/8/8/K6k w - - 0 1")
        engine.handle("position startpos moves d2d4")
        self.assertEqual(len(engine.board.move_stack), 1)

    def test_illegal_move_leaves_board_untouched(self) -> None:
        engine, _ = self._engine()
        engine.handle("position startpos moves e2e4")
        engine.handle(f"position fen {START_FEN} moves e2e5")
        self.assertEqual(engine.board.move_stack, [chess.Move.from_uci("e2e4")])

    def test_invalid_fen_ignored(self) -> None:
        engine, _ = self._engine()
        engine.handle("position fen not-a-fen moves ")
        self.assertEqual(engine.board.fen(), START_FEN)

    def test_perft_writes_divide_then_total(self) -> None:
        engine, out = self._engine()
        engine.handle("perft 1")
        lines = out.getvalue().decode().split("\n")
        self.assertEqual(len(lines), 23)   # 20 moves, blank, total, trailing ""
        self.assertIn("e2e4 1", lines)
        self.assertEqual(lines[-3:], ["", "20", ""])

    def test_perft_depth_zero_writes_bare_total(self) -> None:
        engine, out = self._engine(newline="\r\n")
        engine.handle("perft 0")
        self.assertEqual(out.getvalue(), b"1\r\n")

    def test_perft_total_only_with_crlf(self) -> None:
        engine, out = self._engine(divide=False, newline="\r\n")
        engine.handle("perft 2")
        self.assertEqual(out.getvalue(), b"400\r\n")

    def test_isready_and_quit(self) -> None:
        engine, out = self._engine()
        self.assertTrue(engine.handle("isready"))
        self.assertEqual(out.getvalue(), b"readyok\n")
        self.assertFalse(engine.handle("quit"))

    def test_unknown_and_blank_lines_ignored(self) -> None:
        engine, out = self._engine()
        self.assertTrue(engine.handle(""))
        self.assertTrue(engine.handle("go depth 3"))
        self.assertTrue(engine.handle("perft deep"))
        self.assertEqual(out.getvalue(), b"")
