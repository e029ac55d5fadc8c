import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from perftharness import config as config_module
from perftharness.config import Config, load_config


class LoadConfigTests(unittest.TestCase):
    def _write(self, text: str) -> Path:
        fd, name = tempfile.mkstemp(suffix=".yaml")
        os.close(fd)
        path = Path(name)
        path.write_text(text, encoding="utf-8")
        self.addCleanup(lambda: path.unlink(missing_ok=True))
        return path

    def test_defaults_when_no_default_file(self) -> None:
        with patch.object(config_module, "DEFAULT_CONFIG_PATH", Path("does-not-exist.yaml")):
            config = load_config()
        self.assertEqual(config, Config())
        self.assertEqual(config.protocol.sentinel, "quit")
        self.assertEqual(config.protocol.line_ending, "\r\n")
        self.assertEqual(config.protocol.trailing_bytes, 1)
        self.assertEqual(config.engine.transport, "pty")

    def test_explicit_missing_file_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config("no-such-config.yaml")

    def test_full_file(self) -> None:
        path = self._write(
            "engine:\n"
            "  command: ./engine --uci\n"
            "  transport: pipe\n"
            "protocol:\n"
            "  line_ending: \"\\n\"\n"
            "  sync_timeout: 2.5\n"
            "logging:\n"
            "  level: debug\n"
            "  transcript_dir: ./logs/sessions\n"
        )
        config = load_config(path)
        self.assertEqual(config.engine.command, ["./engine", "--uci"])
        self.assertEqual(config.engine.transport, "pipe")
        self.assertEqual(config.protocol.line_ending, "\n")
        self.assertEqual(config.protocol.sync_timeout, 2.5)
        self.assertEqual(config.protocol.capture_timeout, 300.0)
        self.assertEqual(config.logging.level, "DEBUG")
        self.assertEqual(config.transcript_path, Path("./logs/sessions"))

    def test_command_as_list(self) -> None:
        path = self._write("engine:\n  command: [stockfish, --flag]\n")
        self.assertEqual(load_config(path).engine.command, ["stockfish", "--flag"])

    def test_empty_file_gives_defaults(self) -> None:
        path = self._write("")
        self.assertEqual(load_config(path), Config())

    def test_unknown_transport_rejected(self) -> None:
        path = self._write("engine:\n  transport: socket\n")
        with self.assertRaises(ValueError):
            load_config(path)

    def test_negative_trailing_bytes_rejected(self) -> None:
        path = self._write("protocol:\n  trailing_bytes: -1\n")
        with self.assertRaises(ValueError):
            load_config(path)

    def test_non_numeric_timeout_rejected(self) -> None:
        path = self._write("protocol:\n  sync_timeout: soon\n")
        with self.assertRaises(ValueError):
            load_config(path)

    def test_non_mapping_section_rejected(self) -> None:
        path = self._write("engine: [a, b]\n")
        with self.assertRaises(ValueError):
            load_config(path)
