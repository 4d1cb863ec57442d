import json
import tempfile
import unittest
from pathlib import Path

from customvision_kit.config import ModelProfile, load_model_profile
from customvision_kit.errors import ModelUnavailable, ShapeMismatchError
from customvision_kit.postprocess import DEFAULT_ANCHORS, GridDetectionDecoder
from customvision_kit.runtime import ClassificationPipeline, pipeline_from_profile


class TestModelProfile(unittest.TestCase):
    def _write_profile(self, payload) -> Path:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    def test_detection_defaults(self) -> None:
        profile = load_model_profile(self._write_profile({"schema_version": 1, "task": "detection"}))
        self.assertIsInstance(profile, ModelProfile)
        self.assertEqual(profile.input_size, 416)
        self.assertEqual(profile.grid_size, (13, 13))
        self.assertEqual(profile.anchors, DEFAULT_ANCHORS)
        self.assertEqual(profile.score_threshold, 0.05)
        decoder = GridDetectionDecoder(profile.decoder_config())
        self.assertEqual(decoder.num_classes, 1)

    def test_classification_defaults(self) -> None:
        profile = load_model_profile(self._write_profile({"schema_version": 1, "task": "classification"}))
        self.assertEqual(profile.input_size, 300)
        self.assertIsNone(profile.model)

    def test_custom_detection_layout(self) -> None:
        path = self._write_profile(
            {
                "schema_version": 1,
                "task": "detection",
                "input_size": 320,
                "grid_size": [10, 10],
                "channels_per_cell": 14,
                "anchors": [1.0, 1.0, 2.0, 2.0],
                "score_threshold": 0.3,
                "labels": "labels.txt",
            }
        )
        profile = load_model_profile(path)
        cfg = profile.decoder_config()
        self.assertEqual((cfg.grid_height, cfg.grid_width), (10, 10))
        self.assertEqual(cfg.anchors, ((1.0, 1.0), (2.0, 2.0)))
        self.assertEqual(GridDetectionDecoder(cfg).num_classes, 2)
        self.assertEqual(profile.labels, "labels.txt")

    def test_unknown_keys_rejected(self) -> None:
        path = self._write_profile({"schema_version": 1, "task": "detection", "nms": True})
        with self.assertRaises(ValueError):
            load_model_profile(path)

    def test_bad_task_rejected(self) -> None:
        path = self._write_profile({"schema_version": 1, "task": "segmentation"})
        with self.assertRaises(ValueError):
            load_model_profile(path)

    def test_wrong_types_rejected(self) -> None:
        for payload in (
            {"schema_version": "1", "task": "detection"},
            {"schema_version": 1, "task": "detection", "input_size": 416.0},
            {"schema_version": 1, "task": "detection", "score_threshold": True},
            {"schema_version": 1, "task": "detection", "grid_size": [13]},
            {"schema_version": 2, "task": "detection"},
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(ValueError):
                    load_model_profile(self._write_profile(payload))

    def test_odd_anchor_list_rejected(self) -> None:
        path = self._write_profile({"schema_version": 1, "task": "detection", "anchors": [1.0, 2.0, 3.0]})
        with self.assertRaises(ShapeMismatchError):
            load_model_profile(path)

    def test_invalid_json(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "profile.json"
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_model_profile(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_model_profile(Path("/nonexistent/profile.json"))


class TestPipelineFromProfile(unittest.TestCase):
    def test_classification_without_model(self) -> None:
        profile = ModelProfile(schema_version=1, task="classification", input_size=300, num_classes=4)
        pipeline = pipeline_from_profile(profile)
        self.assertIsInstance(pipeline, ClassificationPipeline)
        self.assertEqual(len(pipeline(b"")), 4)

    def test_detection_without_model(self) -> None:
        profile = ModelProfile(schema_version=1, task="detection", input_size=416)
        with self.assertRaises(ModelUnavailable):
            pipeline_from_profile(profile)


if __name__ == "__main__":
    unittest.main()
