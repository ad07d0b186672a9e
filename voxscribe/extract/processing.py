"""
voxscribe.extract.processing - Sample buffer transforms.

Pure numeric operations on 16kHz mono float32 buffers: DC offset removal,
peak normalization and silence trimming. No I/O. Every function is a no-op
on an empty buffer.
"""

from __future__ import annotations

import numpy as np

from voxscribe.config import AudioProcessing
from voxscribe.logging import logger

SAMPLE_RATE = 16_000

# Below this level a mean is treated as zero and a peak as silence.
MIN_LEVEL = 1e-6
PEAK_TOLERANCE = 0.01


def duration_seconds(samples: np.ndarray) -> float:
    """Duration of a buffer at the pipeline sample rate."""
    return len(samples) / SAMPLE_RATE


def db_to_linear(db: float) -> float:
    return 10.0 ** (db / 20.0)


def rms(samples: np.ndarray) -> float:
    """Root-mean-square level of a window (0.0 for an empty window)."""
    if len(samples) == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))


def remove_dc_offset(samples: np.ndarray) -> np.ndarray:
    """Subtract the mean from every sample, in place.

    Returns:
        The same array, for chaining
    """
    if samples.size == 0:
        return samples

    mean = float(np.mean(samples, dtype=np.float64))
    if abs(mean) > MIN_LEVEL:
        logger.debug("Removing DC offset %.6f", mean)
        samples -= np.float32(mean)
    return samples


def normalize_peak(samples: np.ndarray) -> np.ndarray:
    """Scale samples in place so the absolute peak is 1.0.

    Silent buffers (peak below MIN_LEVEL) are left alone rather than
    amplifying noise. Peaks already within 1% of 1.0 are not rescaled.
    """
    if samples.size == 0:
        return samples

    peak = float(np.max(np.abs(samples)))
    if peak < MIN_LEVEL:
        logger.debug("Audio is silent (peak %.2e), skipping normalization", peak)
        return samples

    if abs(peak - 1.0) > PEAK_TOLERANCE:
        logger.debug("Normalizing peak %.4f to 1.0", peak)
        samples *= np.float32(1.0 / peak)
    return samples


def trim_silence(samples: np.ndarray, threshold_db: float, pad_ms: int) -> np.ndarray:
    """Trim leading and trailing silence using 10ms RMS windows.

    Args:
        samples: Input buffer
        threshold_db: Window RMS level (dBFS) above which audio counts as active
        pad_ms: Padding kept around the active span, in milliseconds

    Returns:
        A sliced copy of the active span, or the original buffer when nothing
        would be trimmed (all silent, fully active, or an empty span)
    """
    n = len(samples)
    if n == 0:
        return samples

    threshold = db_to_linear(threshold_db)
    window = max(SAMPLE_RATE // 100, 1)

    starts = np.arange(0, n, window)
    energy = np.add.reduceat(np.square(samples, dtype=np.float64), starts)
    counts = np.diff(np.append(starts, n))
    levels = np.sqrt(energy / counts)

    active = np.flatnonzero(levels > threshold)
    if active.size == 0:
        return samples

    start = int(starts[active[0]])
    end = min(int(starts[active[-1]]) + window, n)
    if start >= end:
        return samples

    pad = SAMPLE_RATE * pad_ms // 1000
    start = max(start - pad, 0)
    end = min(end + pad, n)

    if start == 0 and end == n:
        return samples

    logger.debug(
        "Trimmed %d ms of leading and %d ms of trailing silence",
        start * 1000 // SAMPLE_RATE,
        (n - end) * 1000 // SAMPLE_RATE,
    )
    return samples[start:end].copy()


def process_samples(samples: np.ndarray, processing: AudioProcessing) -> np.ndarray:
    """Apply the enabled processing steps.

    Order is fixed: DC removal, then normalization, then trimming. The trim
    threshold is calibrated against normalized amplitude.
    """
    if processing.dc_offset_removal:
        remove_dc_offset(samples)

    if processing.normalize:
        normalize_peak(samples)

    if processing.trim_silence:
        samples = trim_silence(
            samples,
            processing.silence_threshold_db,
            processing.silence_pad_ms,
        )

    return samples
