"""
Voxscribe - speech-to-text transcription toolkit.

Turns a local media file or a remote URL into a timestamped transcript
through a five-stage pipeline: download → ffmpeg decode → sample
processing → whisper.cpp inference → text/SRT/WebVTT/JSON export.
"""

__version__ = "0.1.0"
