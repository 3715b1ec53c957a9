"""
ffmpeg helpers for cutting, joining and scoring reel segments
"""

import asyncio
import shutil
import subprocess
from pathlib import Path
from typing import List, Sequence

from reelgen.core import PipelineError, get_logger

logger = get_logger(__name__, component="ffmpeg")

OUTPUT_WIDTH = 720
OUTPUT_HEIGHT = 1280
OUTPUT_FPS = 30


class FFmpegError(PipelineError):
    pass


async def _run(cmd: List[str], timeout: int) -> subprocess.CompletedProcess:
    try:
        return await asyncio.to_thread(
            subprocess.run,
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise FFmpegError(f"{cmd[0]} could not run: {exc}") from exc


def build_segment_cmd(input_path: str, duration: float, output_path: str) -> List[str]:
    """Cut ``input_path`` to exactly ``duration`` seconds in the reel format.

    Clips shorter than the slot are held on their last frame (tpad) rather
    than slowed down.
    """
    video_filter = (
        f"scale={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}:force_original_aspect_ratio=decrease,"
        f"pad={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}:(ow-iw)/2:(oh-ih)/2,"
        f"fps={OUTPUT_FPS},setsar=1,"
        f"tpad=stop_mode=clone:stop_duration={duration:.3f}"
    )
    return [
        "ffmpeg", "-y",
        "-i", input_path,
        "-vf", video_filter,
        "-t", f"{duration:.3f}",
        "-an",
        "-c:v", "libx264",
        "-preset", "veryfast",
        "-pix_fmt", "yuv420p",
        output_path,
    ]


def build_music_cmd(video_path: str, music_path: str, volume: float, duration: float, output_path: str) -> List[str]:
    """Lay a music bed under a silent video, faded out over the last second."""
    fade_start = max(duration - 1.0, 0.0)
    return [
        "ffmpeg", "-y",
        "-i", video_path,
        "-i", music_path,
        "-filter_complex",
        f"[1:a]volume={volume:.2f},afade=t=out:st={fade_start:.3f}:d=1[a]",
        "-map", "0:v:0",
        "-map", "[a]",
        "-c:v", "copy",
        "-c:a", "aac",
        "-t", f"{duration:.3f}",
        output_path,
    ]


async def cut_segment(input_path: str, duration: float, output_path: str) -> str:
    result = await _run(build_segment_cmd(input_path, duration, output_path), timeout=180)
    if result.returncode != 0 or not Path(output_path).exists():
        raise FFmpegError(f"Segment cut failed for {input_path}: {result.stderr[-500:]}")
    return output_path


async def add_music_bed(video_path: str, music_path: str, volume: float, duration: float, output_path: str) -> str:
    result = await _run(build_music_cmd(video_path, music_path, volume, duration, output_path), timeout=180)
    if result.returncode != 0 or not Path(output_path).exists():
        raise FFmpegError(f"Music mix failed: {result.stderr[-500:]}")
    return output_path


async def concatenate_videos(videos: Sequence[str], output_path: str) -> str:
    """Concatenate videos in order. Tries stream copy first, then re-encodes."""
    if not videos:
        raise FFmpegError("Nothing to concatenate")

    if len(videos) == 1:
        await asyncio.to_thread(shutil.copy, videos[0], output_path)
        return output_path

    concat_file = Path(output_path).parent / f"{Path(output_path).stem}_concat.txt"
    with open(concat_file, "w", encoding="utf-8") as f:
        for video in videos:
            f.write(f"file '{video}'\n")

    copy_cmd = [
        "ffmpeg", "-y",
        "-f", "concat",
        "-safe", "0",
        "-i", str(concat_file),
        "-c", "copy",
        output_path,
    ]
    try:
        result = await _run(copy_cmd, timeout=300)
        if result.returncode != 0:
            logger.warning("Stream-copy concat failed, re-encoding", extra={"stderr": result.stderr[-500:]})
            reencode_cmd = copy_cmd[:-3] + [
                "-c:v", "libx264",
                "-preset", "veryfast",
                "-pix_fmt", "yuv420p",
                output_path,
            ]
            result = await _run(reencode_cmd, timeout=600)
            if result.returncode != 0:
                raise FFmpegError(f"Concatenation failed: {result.stderr[-500:]}")
    finally:
        concat_file.unlink(missing_ok=True)

    if not Path(output_path).exists():
        raise FFmpegError("Concatenation produced no output")
    return output_path
