"""
voxscribe.transcribe - Whisper transcription engine.

Pipeline Stage 4: Run whisper.cpp over the processed sample buffer and map
its output to segment-level transcripts with optional word-level
timestamps.
"""

from __future__ import annotations
