"""Parsing of ffmpeg-lh output into transcoder filter arguments.

ffmpeg-lh prints its recommendation as the last line of its output, e.g.::

    Not enough headroom!
    -af loudnorm=I=-18.0:LRA=12.0:TP=-1.0:measured_I=-27.1:...:offset=0.4:linear=true

For silent or very short clips the measured values can come out as
``-inf``/``inf``, which ffmpeg then rejects. Everything that knows about
that text format lives in this module.
"""

import logging
import re
import shlex

from ankinorm.config import FILTER_FLAG, REFERENCE_LOUDNESS
from ankinorm.core.models import FilterExpression, NormalizationRequest

logger = logging.getLogger(__name__)

# Non-finite sentinels and their finite substitutes
NON_FINITE_SUBSTITUTIONS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"measured_I=-inf\b"), "measured_I=-70"),
    (re.compile(r"offset=\+?inf\b"), "offset=0"),
    (re.compile(r"measured_TP=-inf\b"), "measured_TP=-20"),
    (re.compile(r"measured_thresh=-inf\b"), "measured_thresh=-70"),
]

NON_FINITE_RE = re.compile(r"=\s*[-+]?(?:inf(?:inity)?|nan)\b", re.IGNORECASE)

# ffmpeg errors caused by non-finite filter values; only these trigger a retry
TRANSCODE_RETRY_SIGNATURES = ("Value -inf", "Result too large")


def extract_filter(output: str) -> FilterExpression:
    """
    Extract the filter recommendation from ffmpeg-lh output.

    The last non-empty line is used, since warnings may precede it. When
    that line does not start with the filter flag, the whole output is
    returned with ``clean=False``.
    """
    lines = [line.rstrip() for line in output.splitlines()]
    lines = [line for line in lines if line.strip()]
    candidate = lines[-1].strip() if lines else ""

    if candidate.startswith(FILTER_FLAG):
        return FilterExpression(text=candidate)

    logger.warning("Could not find filter line, using full output")
    return FilterExpression(text=output.strip(), clean=False)


def sanitize_filter(text: str) -> str:
    """Replace non-finite measurements with finite defaults."""
    for pattern, replacement in NON_FINITE_SUBSTITUTIONS:
        text = pattern.sub(replacement, text)
    return text


def has_non_finite(text: str) -> bool:
    """Check if a filter still contains an infinite or NaN value."""
    return NON_FINITE_RE.search(text) is not None


def fallback_filter(request: NormalizationRequest) -> str:
    """Flat gain filter used when loudnorm cannot be applied."""
    gain = request.integrated_loudness - REFERENCE_LOUDNESS
    return f"{FILTER_FLAG} volume={gain}dB"


def resolve_filter(
    expression: FilterExpression,
    request: NormalizationRequest,
) -> tuple[str, bool]:
    """
    Turn an extracted expression into a filter safe to pass to ffmpeg.

    Returns:
        Tuple of (filter text, whether the gain fallback was used).
    """
    text = expression.text
    if expression.clean:
        sanitized = sanitize_filter(text)
        if sanitized != text:
            logger.info("Detected -inf values in the filter, fixed: %s", sanitized)
        text = sanitized

    if not expression.clean or not text.startswith(FILTER_FLAG) or has_non_finite(text):
        text = fallback_filter(request)
        logger.info("Using direct gain adjustment for very short audio: %s", text)
        return text, True

    return text, False


def filter_args(text: str) -> list[str]:
    """Split a filter line into command arguments."""
    return shlex.split(text)


def is_non_finite_failure(output: str) -> bool:
    """Check if an ffmpeg failure was caused by a non-finite filter value."""
    return any(signature in output for signature in TRANSCODE_RETRY_SIGNATURES)
