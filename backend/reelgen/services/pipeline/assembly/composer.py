"""
Template composer - cuts clips to a template's rhythm and joins them.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

from reelgen.config import FLYOVER_SLOT, TemplateSpec
from reelgen.core import TemplateCompositionFailed, get_logger
from reelgen.services.infrastructure.resources import ResourceTracker

from .ffmpeg import FFmpegError, add_music_bed, concatenate_videos, cut_segment

logger = get_logger(__name__, component="template_composer")


@dataclass(frozen=True)
class PlannedClip:
    slot: Union[int, str]
    path: Path
    duration: float


class TemplateComposer:

    def __init__(self, music_dir: Optional[Path] = None):
        self.music_dir = Path(music_dir) if music_dir else None

    def plan(
        self,
        spec: TemplateSpec,
        clip_paths: Sequence[Path],
        flyover_path: Optional[Path] = None,
    ) -> List[PlannedClip]:
        """
        Resolve every template slot to a concrete clip and duration.

        Photo slots wrap around (``index % len(clip_paths)``) when fewer clips
        than slots are available.

        Raises:
            TemplateCompositionFailed: No clips, a flyover slot without a
                flyover clip, or too little variety in the resulting cut
        """
        if not clip_paths:
            raise TemplateCompositionFailed(spec.name, "no clips available")

        planned: List[PlannedClip] = []
        used_indices = set()
        for slot, duration in zip(spec.sequence, spec.durations):
            if slot == FLYOVER_SLOT:
                if flyover_path is None:
                    raise TemplateCompositionFailed(spec.name, "flyover clip required but missing")
                planned.append(PlannedClip(slot, Path(flyover_path), duration))
                continue
            index = int(slot) % len(clip_paths)
            used_indices.add(index)
            planned.append(PlannedClip(index, Path(clip_paths[index]), duration))

        required_unique = min(2, len(clip_paths))
        if len(used_indices) < required_unique:
            raise TemplateCompositionFailed(
                spec.name,
                f"cut uses {len(used_indices)} distinct clips, needs {required_unique}",
            )
        return planned

    def _music_path(self, spec: TemplateSpec) -> Optional[Path]:
        if not spec.music or not self.music_dir:
            return None
        path = self.music_dir / spec.music.file_name
        if not path.exists():
            logger.warning(f"Music bed {path.name} not found, composing without music",
                           extra={"template": spec.name})
            return None
        return path

    async def compose(
        self,
        spec: TemplateSpec,
        clip_paths: Sequence[Path],
        flyover_path: Optional[Path],
        output_path: Path,
        tracker: ResourceTracker,
    ) -> Path:
        """Render ``spec`` to ``output_path``. Intermediate files go to ``tracker``."""
        plan = self.plan(spec, clip_paths, flyover_path)
        output_path = Path(output_path)
        segments_dir = tracker.track(output_path.parent / f"{spec.name}_segments")
        segments_dir.mkdir(parents=True, exist_ok=True)

        try:
            segments = []
            for position, planned in enumerate(plan):
                segment_path = str(segments_dir / f"segment_{position:02d}.mp4")
                await cut_segment(str(planned.path), planned.duration, segment_path)
                segments.append(segment_path)

            music = self._music_path(spec)
            if music is None:
                await concatenate_videos(segments, str(output_path))
            else:
                silent_path = str(tracker.track(segments_dir / "silent.mp4"))
                await concatenate_videos(segments, silent_path)
                await add_music_bed(silent_path, str(music), spec.music.volume,
                                    spec.total_duration, str(output_path))
        except FFmpegError as exc:
            raise TemplateCompositionFailed(spec.name, str(exc)) from exc

        logger.info(f"Composed template {spec.name}", extra={
            "template": spec.name,
            "segments": len(plan),
            "duration_seconds": round(spec.total_duration, 3),
        })
        return output_path
