"""
Tests for reelgen.core.exceptions
"""

from reelgen.core import (
    ClipGenerationError,
    InfrastructureError,
    NoSuccessfulClips,
    NoSuccessfulTemplates,
    PipelineError,
    ReelGenError,
    ServiceUnavailable,
    StorageError,
    SynthesisFailed,
    SynthesisTimeout,
    TemplateCompositionFailed,
    ValidationError,
)


class TestExceptionHierarchy:

    def test_pipeline_errors(self):
        for exc_type in (ValidationError, ClipGenerationError, NoSuccessfulClips, NoSuccessfulTemplates,
                         TemplateCompositionFailed):
            assert issubclass(exc_type, PipelineError)
            assert issubclass(exc_type, ReelGenError)

    def test_synthesis_errors_are_clip_errors(self):
        assert issubclass(SynthesisFailed, ClipGenerationError)
        assert issubclass(SynthesisTimeout, ClipGenerationError)

    def test_infrastructure_errors(self):
        assert issubclass(StorageError, InfrastructureError)
        assert issubclass(ServiceUnavailable, InfrastructureError)
        assert not issubclass(StorageError, PipelineError)


class TestMessages:

    def test_no_successful_clips_lists_each_photo(self):
        exc = NoSuccessfulClips({2: "timeout", 0: "rejected"})

        assert str(exc) == "No clips could be generated (photo 0: rejected; photo 2: timeout)"
        assert exc.failures == {2: "timeout", 0: "rejected"}

    def test_no_successful_clips_without_detail(self):
        assert str(NoSuccessfulClips({})) == "No clips could be generated"

    def test_no_successful_templates(self):
        exc = NoSuccessfulTemplates({"wave": "ffmpeg exit 1"})

        assert str(exc) == "All templates failed (wave: ffmpeg exit 1)"

    def test_template_composition_failed(self):
        exc = TemplateCompositionFailed("crescendo", "no clips available")

        assert str(exc) == "Template 'crescendo' composition failed: no clips available"
        assert exc.reason == "no clips available"

    def test_synthesis_timeout(self):
        exc = SynthesisTimeout("task-1", 30)

        assert "task-1" in str(exc)
        assert exc.attempts == 30

    def test_storage_error_key(self):
        assert StorageError("missing", key="a/b.mp4").key == "a/b.mp4"
