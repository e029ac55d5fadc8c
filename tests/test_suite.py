import os
import tempfile
import unittest
from pathlib import Path

from perftharness.suite import (
    SuiteCaseEvent,
    SuiteCompleteEvent,
    SuiteEntry,
    load_suite,
    parse_suite_line,
    run_suite,
)

from helpers import START_FEN, pipe_config, script_config


class ParseSuiteTests(unittest.TestCase):
    def test_parses_depth_fields(self) -> None:
        entry = parse_suite_line(f"{START_FEN} ;D1 20 ;D2 400 ;D3 8902", line_no=4)
        self.assertEqual(entry.fen, START_FEN)
        self.assertEqual(entry.expected, {1: 20, 2: 400, 3: 8902})
        self.assertEqual(entry.line_no, 4)

    def test_blank_and_comment_lines_skipped(self) -> None:
        self.assertIsNone(parse_suite_line("   \n"))
        self.assertIsNone(parse_suite_line("# header"))

    def test_bad_depth_field_rejected(self) -> None:
        with self.assertRaises(ValueError):
            parse_suite_line(f"{START_FEN} ;D1 twenty")
        with self.assertRaises(ValueError):
            parse_suite_line(f"{START_FEN} ;depth1")

    def test_load_suite_skips_comments(self) -> None:
        fd, name = tempfile.mkstemp(suffix=".epd")
        os.close(fd)
        path = Path(name)
        self.addCleanup(lambda: path.unlink(missing_ok=True))
        path.write_text(f"# suite\n\n{START_FEN} ;D1 20\n8/8/8/8/8/8/8/K6k w - - 0 1 ;D1 3\n", encoding="utf-8")

        entries = load_suite(path)
        self.assertEqual([e.line_no for e in entries], [3, 4])
        self.assertEqual(entries[1].expected, {1: 3})

    def test_load_missing_suite_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_suite("missing-suite.epd")

    def test_bundled_suite_loads(self) -> None:
        suite_path = Path(__file__).resolve().parent.parent / "perftsuite.epd"
        entries = load_suite(suite_path)
        self.assertGreaterEqual(len(entries), 5)
        self.assertEqual(entries[0].expected[2], 400)


class RunSuiteTests(unittest.IsolatedAsyncioTestCase):
    async def test_passes_and_mismatches_reported(self) -> None:
        entries = [
            SuiteEntry(fen=START_FEN, expected={1: 20, 2: 400, 3: 8902}, line_no=1),
            SuiteEntry(fen=START_FEN, expected={1: 21}, line_no=2),
        ]
        events = [e async for e in run_suite(entries, pipe_config(), max_depth=2)]

        cases = [e for e in events if isinstance(e, SuiteCaseEvent)]
        self.assertEqual([(c.entry.line_no, c.depth) for c in cases], [(1, 1), (1, 2), (2, 1)])
        self.assertEqual([c.passed for c in cases], [True, True, False])
        self.assertEqual(cases[2].actual, 20)
        self.assertIsNone(cases[2].error)

        summary = events[-1]
        self.assertIsInstance(summary, SuiteCompleteEvent)
        self.assertEqual((summary.passed, summary.failed, summary.total), (2, 1, 3))

    async def test_session_errors_become_failed_cases(self) -> None:
        entries = [SuiteEntry(fen=START_FEN, expected={1: 20, 2: 400})]
        events = [e async for e in run_suite(entries, script_config("pass"))]

        cases = [e for e in events if isinstance(e, SuiteCaseEvent)]
        self.assertEqual(len(cases), 2)
        self.assertTrue(all(not c.passed for c in cases))
        self.assertTrue(all(c.error.startswith("SentinelNotFound") for c in cases))
        self.assertEqual(events[-1].failed, 2)
