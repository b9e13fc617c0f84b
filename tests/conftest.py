from pathlib import Path

import pytest

from ankinorm.core.models import NormalizationRequest, ToolInvocationResult

HELPER = "ffmpeg-lh"
LOUDNORM_LINE = (
    "-af loudnorm=I=-18.0:LRA=12.0:TP=-1.0:measured_I=-27.5:measured_LRA=4.2:"
    "measured_TP=-9.1:measured_thresh=-38.0:offset=0.3:linear=true"
)


class FakeRunner:
    """Stands in for ffmpeg-lh and ffmpeg.

    Each transcode consumes the next (success, output, data) step; data is
    written to the output path when not None.
    """

    def __init__(self, helper_output=LOUDNORM_LINE, helper_success=True, transcode_steps=None):
        self.helper_output = helper_output
        self.helper_success = helper_success
        self.transcode_steps = list(transcode_steps or [(True, "", b"normalized")])
        self.calls: list[list[str]] = []

    @property
    def helper_calls(self):
        return [c for c in self.calls if c[0] == HELPER]

    @property
    def transcode_calls(self):
        return [c for c in self.calls if c[0] != HELPER and "volumedetect" not in c]

    def __call__(self, cmd):
        self.calls.append(list(cmd))
        if cmd[0] == HELPER:
            return ToolInvocationResult(output=self.helper_output, success=self.helper_success)
        if "volumedetect" in cmd:
            return ToolInvocationResult(
                output="[Parsed_volumedetect_0] mean_volume: -20.5 dB\n"
                       "[Parsed_volumedetect_0] max_volume: -3.0 dB\n",
                success=True,
                returncode=0,
            )

        success, output, data = self.transcode_steps.pop(0)
        if data is not None:
            Path(cmd[-1]).write_bytes(data)
        return ToolInvocationResult(output=output, success=success, returncode=0 if success else 1)


@pytest.fixture
def request_defaults():
    return NormalizationRequest()


@pytest.fixture
def media_dir(tmp_path):
    media = tmp_path / "collection.media"
    media.mkdir()
    (media / "hello.mp3").write_bytes(b"original mp3")
    (media / "world.ogg").write_bytes(b"original ogg")
    (media / "notes.txt").write_text("not audio")
    return media
