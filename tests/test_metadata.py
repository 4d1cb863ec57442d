import tempfile
import unittest
from pathlib import Path

from customvision_kit.metadata import load_labels


class TestLoadLabels(unittest.TestCase):
    def _write(self, text: str) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "labels.txt"
        path.write_text(text, encoding="utf-8")
        return path

    def test_labels_txt(self) -> None:
        path = self._write("cat\ndog\n\n# comment\nbird\n")
        self.assertEqual(load_labels(path), {0: "cat", 1: "dog", 2: "bird"})

    def test_names_mapping(self) -> None:
        path = self._write("names:\n  0: person\n  3: 'bicycle'\n  x: ignored\n")
        self.assertEqual(load_labels(path), {0: "person", 3: "bicycle"})

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_labels("/nonexistent/labels.txt")


if __name__ == "__main__":
    unittest.main()
