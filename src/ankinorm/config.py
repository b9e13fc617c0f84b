"""Configuration and settings for the Anki audio normalizer."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Normalization defaults (overridable from the command line)
    backup_dir: Path = Field(default=Path("./backup"), alias="ANKINORM_BACKUP_DIR")
    integrated_loudness: float = Field(default=-18.0, alias="ANKINORM_INTEGRATED_LOUDNESS")
    loudness_range: float = Field(default=12.0, alias="ANKINORM_LOUDNESS_RANGE")
    true_peak: float = Field(default=-1.0, alias="ANKINORM_TRUE_PEAK")

    # External tools
    ffmpeg_lh_path: Optional[str] = Field(default=None, alias="FFMPEG_LH_PATH")
    ffmpeg_path: str = Field(default="ffmpeg", alias="FFMPEG_PATH")
    tool_timeout_sec: Optional[float] = Field(default=None, alias="ANKINORM_TOOL_TIMEOUT")

    # Diagnostics
    command_log_path: Path = Field(
        default=Path("last_ffmpeg_command.sh"), alias="ANKINORM_COMMAND_LOG"
    )
    measure_levels: bool = Field(default=True, alias="ANKINORM_MEASURE_LEVELS")

    model_config = {"env_file": ".env", "extra": "ignore"}

    def get_helper_candidates(self) -> list[str]:
        """Get helper locations to try, most specific first."""
        if self.ffmpeg_lh_path:
            return [self.ffmpeg_lh_path]
        return [HELPER_NAME, LOCAL_HELPER]


# Supported audio files and the encoder used to re-write each of them
AUDIO_EXTENSIONS = frozenset({".mp3", ".wav", ".ogg", ".m4a", ".flac"})
CODEC_MAP = {
    ".mp3": "libmp3lame",
    ".wav": "pcm_s16le",
    ".ogg": "libvorbis",
    ".m4a": "aac",
    ".flac": "flac",
}
PASSTHROUGH_CODEC = "copy"

# ffmpeg-loudnorm-helper
HELPER_NAME = "ffmpeg-lh"
LOCAL_HELPER = "./ffmpeg-lh"
HELPER_URL = "https://github.com/indiscipline/ffmpeg-loudnorm-helper"

# Audio filter flag expected at the start of the helper's recommendation
FILTER_FLAG = "-af"

# Typical loudness of unnormalized material, used for the flat gain fallback
REFERENCE_LOUDNESS = -23.0

# Temporary output is written next to the original as <file>.processing<ext>
PROCESSING_SUFFIX = ".processing"

# Valid target ranges
INTEGRATED_LOUDNESS_RANGE = (-70.0, -5.0)
LOUDNESS_RANGE_RANGE = (1.0, 20.0)
TRUE_PEAK_RANGE = (-9.0, 0.0)


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
