"""
Optional inference engines for customvision_kit.

Each backend imports its runtime (onnxruntime, tflite-runtime, torch) on
construction, so decoding works without any of them installed.
"""

from __future__ import annotations

__all__ = []
