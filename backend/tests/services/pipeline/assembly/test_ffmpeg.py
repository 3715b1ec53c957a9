"""
Tests for reelgen.services.pipeline.assembly.ffmpeg
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from reelgen.services.pipeline.assembly.ffmpeg import (
    FFmpegError,
    build_music_cmd,
    build_segment_cmd,
    concatenate_videos,
    cut_segment,
)


def _completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestCommandBuilders:
    """Test pure command construction."""

    def test_segment_cmd_trims_to_slot_duration(self):
        cmd = build_segment_cmd("in.mp4", 1.5, "out.mp4")

        idx = cmd.index("-t")
        assert cmd[idx + 1] == "1.500"
        assert cmd[-1] == "out.mp4"
        assert "-an" in cmd

    def test_segment_cmd_pads_short_clips_with_last_frame(self):
        cmd = build_segment_cmd("in.mp4", 2.0, "out.mp4")
        video_filter = cmd[cmd.index("-vf") + 1]

        assert "tpad=stop_mode=clone:stop_duration=2.000" in video_filter
        assert "scale=720:1280" in video_filter
        assert "fps=30" in video_filter

    def test_music_cmd_fades_out_over_last_second(self):
        cmd = build_music_cmd("v.mp4", "m.mp3", 0.6, 10.0, "out.mp4")
        audio_filter = cmd[cmd.index("-filter_complex") + 1]

        assert "volume=0.60" in audio_filter
        assert "afade=t=out:st=9.000:d=1" in audio_filter
        assert cmd[cmd.index("-t") + 1] == "10.000"

    def test_music_cmd_fade_never_starts_before_zero(self):
        cmd = build_music_cmd("v.mp4", "m.mp3", 1.0, 0.5, "out.mp4")
        audio_filter = cmd[cmd.index("-filter_complex") + 1]

        assert "st=0.000" in audio_filter


@pytest.mark.asyncio
class TestFFmpegExecution:
    """Test subprocess-backed helpers with subprocess.run patched."""

    async def test_cut_segment_failure_raises(self, tmp_path):
        output = tmp_path / "seg.mp4"
        with patch("subprocess.run", return_value=_completed(returncode=1, stderr="bad input")):
            with pytest.raises(FFmpegError, match="bad input"):
                await cut_segment("in.mp4", 1.0, str(output))

    async def test_cut_segment_timeout_raises(self, tmp_path):
        with patch("subprocess.run", side_effect=subprocess.TimeoutExpired("ffmpeg", 180)):
            with pytest.raises(FFmpegError):
                await cut_segment("in.mp4", 1.0, str(tmp_path / "seg.mp4"))

    async def test_cut_segment_success(self, tmp_path):
        output = tmp_path / "seg.mp4"

        def fake_run(cmd, **kwargs):
            output.write_bytes(b"segment")
            return _completed()

        with patch("subprocess.run", side_effect=fake_run):
            assert await cut_segment("in.mp4", 1.0, str(output)) == str(output)

    async def test_concatenate_nothing(self, tmp_path):
        with pytest.raises(FFmpegError):
            await concatenate_videos([], str(tmp_path / "out.mp4"))

    async def test_concatenate_single_video_is_copied(self, tmp_path):
        source = tmp_path / "a.mp4"
        source.write_bytes(b"only")
        output = tmp_path / "out.mp4"

        with patch("subprocess.run") as mock_run:
            await concatenate_videos([str(source)], str(output))

        mock_run.assert_not_called()
        assert output.read_bytes() == b"only"

    async def test_concatenate_falls_back_to_reencode(self, tmp_path):
        output = tmp_path / "out.mp4"
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            if len(calls) == 1:
                return _completed(returncode=1, stderr="codec mismatch")
            output.write_bytes(b"joined")
            return _completed()

        with patch("subprocess.run", side_effect=fake_run):
            await concatenate_videos(["a.mp4", "b.mp4"], str(output))

        assert len(calls) == 2
        assert "copy" in calls[0]
        assert "libx264" in calls[1]
        assert not (tmp_path / "out_concat.txt").exists()

    async def test_concatenate_fails_when_reencode_fails(self, tmp_path):
        with patch("subprocess.run", return_value=_completed(returncode=1, stderr="broken")):
            with pytest.raises(FFmpegError, match="Concatenation failed"):
                await concatenate_videos(["a.mp4", "b.mp4"], str(tmp_path / "out.mp4"))
