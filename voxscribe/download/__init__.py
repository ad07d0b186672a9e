"""
voxscribe.download - Remote audio acquisition.

Pipeline Stage 1 (URL runs only): Fetch the audio track of a remote page
or media URL with yt-dlp into a private temp directory.
"""

from __future__ import annotations
