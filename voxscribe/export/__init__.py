"""
voxscribe.export - Transcript output formats.

Pipeline Stage 5: Render transcripts as plain text, SRT subtitles, WebVTT
subtitles or JSON.
"""

from __future__ import annotations
