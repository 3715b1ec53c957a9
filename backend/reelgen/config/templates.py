"""
Template registry.

A template is an ordered list of slots. Each slot is either a photo-clip
index or the literal "map" (the flyover clip), paired with the number of
seconds that slot occupies in the finished reel.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, Field, model_validator

from reelgen.core.exceptions import ValidationError

FLYOVER_SLOT = "map"

Slot = Union[int, str]


@dataclass(frozen=True)
class MusicBed:
    file_name: str
    volume: float = 0.8


@dataclass(frozen=True)
class TemplateSpec:
    name: str
    description: str
    sequence: List[Slot]
    durations: List[float]
    min_clips: int = 1
    max_clips: int = 10
    music: Optional[MusicBed] = None

    @property
    def requires_flyover(self) -> bool:
        return FLYOVER_SLOT in self.sequence

    @property
    def total_duration(self) -> float:
        return sum(self.durations)

    def check_clip_count(self, count: int) -> None:
        """Raise ValidationError when ``count`` photos cannot drive this template."""
        if count < self.min_clips:
            raise ValidationError(
                f"Template '{self.name}' needs at least {self.min_clips} photos, got {count}"
            )
        if count > self.max_clips:
            raise ValidationError(
                f"Template '{self.name}' accepts at most {self.max_clips} photos, got {count}"
            )


class _MusicModel(BaseModel):
    file: str
    volume: float = Field(default=0.8, ge=0.0, le=2.0)


class TemplateModel(BaseModel):
    """On-disk template definition (TEMPLATE_CONFIG_FILE)."""

    name: str
    description: str = ""
    sequence: List[Union[int, str]]
    durations: List[float]
    min_clips: int = Field(default=1, ge=1)
    max_clips: int = Field(default=10, ge=1)
    music: Optional[_MusicModel] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "TemplateModel":
        if not self.sequence:
            raise ValueError("sequence must not be empty")
        if len(self.sequence) != len(self.durations):
            raise ValueError("sequence and durations must have the same length")
        for slot in self.sequence:
            if isinstance(slot, str) and slot != FLYOVER_SLOT:
                raise ValueError(f"unknown slot '{slot}'")
            if isinstance(slot, int) and slot < 0:
                raise ValueError("slot indices must be non-negative")
        if any(d <= 0 for d in self.durations):
            raise ValueError("durations must be positive")
        if self.min_clips > self.max_clips:
            raise ValueError("min_clips cannot exceed max_clips")
        return self

    def to_spec(self) -> TemplateSpec:
        return TemplateSpec(
            name=self.name,
            description=self.description,
            sequence=list(self.sequence),
            durations=list(self.durations),
            min_clips=self.min_clips,
            max_clips=self.max_clips,
            music=MusicBed(self.music.file, self.music.volume) if self.music else None,
        )


BUILTIN_TEMPLATES: List[TemplateSpec] = [
    TemplateSpec(
        name="crescendo",
        description="Builds momentum with quick cuts into longer holds",
        sequence=[0, 5, 9, 4, 7, 1, 3, 6, 8, 2],
        durations=[2.0833, 2.5, 2.5417, 2.9583, 0.3333, 0.3333, 1.9167, 2.5, 2.5417, 2.8333],
        music=MusicBed("upbeat.mp3", 0.85),
    ),
    TemplateSpec(
        name="wave",
        description="Alternating rhythm of short and long shots",
        sequence=[6, 2, 8, 1, 4, 9, 0, 3, 5, 7],
        durations=[3.0, 0.4, 0.33, 2.63, 0.73, 1.3, 1.3, 0.73, 3.57, 3.57],
        music=MusicBed("smooth.mp3", 0.8),
    ),
    TemplateSpec(
        name="storyteller",
        description="Even pacing that walks through the property",
        sequence=[3, 7, 1, 9, 0, 5, 2, 8, 4, 6],
        durations=[3.75, 3.6667] + [3.625] * 8,
        music=MusicBed("minimal.mp3", 0.75),
    ),
    TemplateSpec(
        name="googlezoomintro",
        description="Opens on an aerial zoom into the location",
        sequence=[FLYOVER_SLOT, 0, 1, 2, 3, 4, 5, 6, 7, 8, 9],
        durations=[3.0, 1.25, 0.9583, 0.9583, 0.625, 1.625, 1.875, 0.9167, 1.125, 1.0833, 1.9583],
        music=MusicBed("zoom.mp3", 0.8),
    ),
]


class TemplateRegistry:
    """Name-indexed collection of templates."""

    def __init__(self, templates: Optional[Iterable[TemplateSpec]] = None):
        self._templates: Dict[str, TemplateSpec] = {}
        for spec in templates if templates is not None else BUILTIN_TEMPLATES:
            self.register(spec)

    def register(self, spec: TemplateSpec) -> None:
        self._templates[spec.name] = spec

    def get(self, name: str) -> TemplateSpec:
        try:
            return self._templates[name]
        except KeyError:
            raise ValidationError(f"Unknown template '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def names(self) -> List[str]:
        return list(self._templates)

    @classmethod
    def from_file(cls, path: Path, include_builtins: bool = True) -> "TemplateRegistry":
        """Load templates from a JSON list; entries override built-ins of the same name."""
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
        entries = raw.get("templates", []) if isinstance(raw, dict) else raw
        registry = cls() if include_builtins else cls([])
        for entry in entries:
            registry.register(TemplateModel.model_validate(entry).to_spec())
        return registry
