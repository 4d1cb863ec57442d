from __future__ import annotations

import argparse
import json
import logging
import math
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import load_model_profile
from .errors import CustomVisionError
from .metadata import load_labels
from .postprocess import GridDecoderConfig
from .runtime import (
    ClassifierConfig,
    DetectionPipeline,
    DetectorConfig,
    load_classifier,
    load_detector,
    pipeline_from_profile,
    resolve_path,
)


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="customvision-kit",
        description="Run Custom Vision classifier/detector exports on a single image.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (DEBUG, INFO, WARNING, ...).")
    sub = parser.add_subparsers(dest="command", required=True)

    cls = sub.add_parser("classify", help="Print per-class scores as JSON.")
    cls.add_argument("image", help="Path to an input image.")
    cls.add_argument("--model", default=None, help="Model file (.onnx/.tflite/.pt). Omit to get NaN scores.")
    cls.add_argument("--labels", default=None, help="labels.txt to name the scores.")
    cls.add_argument("--imgsz", type=int, default=300, help="Square input size.")
    cls.add_argument("--num-classes", type=int, default=10, help="Length of the score vector.")
    cls.add_argument("--backend", default=None, help="Force backend: onnxruntime / tflite / torchscript.")

    det = sub.add_parser("detect", help="Print decoded boxes and scores as JSON.")
    det.add_argument("image", help="Path to an input image.")
    det.add_argument("--model", default=None, help="Model file (.onnx/.tflite/.pt).")
    det.add_argument("--profile", default=None, help="JSON model profile describing the export.")
    det.add_argument("--labels", default=None, help="labels.txt to name the classes.")
    det.add_argument("--imgsz", type=int, default=416, help="Square input size.")
    det.add_argument("--threshold", type=float, default=None, help="Score threshold (default 0.05).")
    det.add_argument("--backend", default=None, help="Force backend: onnxruntime / tflite / torchscript.")
    det.add_argument("--out", default=None, help="Optional output image path for the visualization.")
    return parser


def _labelled(scores: List[float], labels: Dict[int, str]) -> Dict[str, Optional[float]]:
    return {labels.get(i, str(i)): (None if math.isnan(s) else s) for i, s in enumerate(scores)}


def _run_classify(args: argparse.Namespace, image_bytes: bytes) -> Dict[str, object]:
    cfg = ClassifierConfig(input_size=args.imgsz, num_classes=args.num_classes)
    pipeline = load_classifier(args.model, cfg=cfg, backend=args.backend)
    scores = pipeline(image_bytes)
    if args.labels:
        return {"scores": _labelled(scores, load_labels(args.labels))}
    # NaN is not valid JSON; the sentinel is reported as nulls.
    return {"scores": [None if math.isnan(s) else s for s in scores]}


def _detection_pipeline(args: argparse.Namespace) -> Tuple[DetectionPipeline, Optional[Path]]:
    """Build the detector and return it with the labels file its profile names, if any."""
    if args.profile:
        profile_path = Path(args.profile)
        profile = load_model_profile(profile_path)
        if profile.task != "detection":
            raise ValueError(f"Profile {args.profile} is for task {profile.task!r}, not detection.")
        if args.threshold is not None:
            profile = replace(profile, score_threshold=args.threshold)
        # Profile labels are relative to the profile file.
        labels = resolve_path(profile.labels, root=profile_path.parent) if profile.labels else None
        return pipeline_from_profile(profile, model_path=args.model, backend=args.backend), labels

    if not args.model:
        raise ValueError("detect needs --model or --profile")
    threshold = 0.05 if args.threshold is None else args.threshold
    cfg = DetectorConfig(input_size=args.imgsz, decoder=GridDecoderConfig(score_threshold=threshold))
    return load_detector(args.model, cfg=cfg, backend=args.backend), None


def _run_detect(args: argparse.Namespace, image_bytes: bytes) -> Dict[str, object]:
    pipeline, profile_labels = _detection_pipeline(args)
    result = pipeline(image_bytes)
    labels_path = args.labels or profile_labels
    labels = load_labels(labels_path) if labels_path else None
    logger.info("Accepted %d proposals", len(result))

    if args.out:
        from .preprocess import decode_image
        from .visualize import draw_detections

        import cv2  # type: ignore

        vis = draw_detections(decode_image(image_bytes), result, class_names=labels)
        try:
            written = cv2.imwrite(args.out, vis)
        except cv2.error as exc:
            raise RuntimeError(f"Failed to write output image: {args.out}") from exc
        if not written:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    return result.to_dict(class_names=labels)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    image_path = Path(args.image)
    if not image_path.exists():
        print(f"error: image not found: {image_path}", file=sys.stderr)
        return 1
    image_bytes = image_path.read_bytes()

    try:
        if args.command == "classify":
            payload = _run_classify(args, image_bytes)
        else:
            payload = _run_detect(args, image_bytes)
    except (CustomVisionError, FileNotFoundError, ValueError, ImportError, RuntimeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
