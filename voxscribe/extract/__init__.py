"""
voxscribe.extract - Audio decoding and sample processing.

Pipeline Stage 2: Decode any media file to 16kHz mono float32 samples with
FFmpeg, then optionally remove DC offset, normalize peak level and trim
leading/trailing silence.
"""

from __future__ import annotations
