import asyncio
import json
from pathlib import Path

import pytest

from tests.conftest import DecoderFactory
from vlogflow.ai.exceptions import EmptyResponseError
from vlogflow.base.description import AnalysisResult
from vlogflow.base.sampler import FrameSampler
from vlogflow.project import InvalidTransitionError, ProjectPipeline, ProjectStatus, ProjectStore


def _response(index: int = 3) -> str:
    return json.dumps(
        {
            "title": "Harbour walk",
            "summary": "Boats and fish stalls.",
            "vibe": ["seaside"],
            "timeline": [
                {
                    "timestamp": "00:02",
                    "content": "Fish market",
                    "location": "Tsukiji Outer Market",
                    "foodItems": ["tuna"],
                    "bestFrameIndex": index,
                    "highlightType": "food",
                }
            ],
        }
    )


class StubAnalyzer:
    """Returns canned responses keyed by frame count, recording the requests it saw."""

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default if default is not None else _response()
        self.requests = []

    async def analyze(self, request):
        self.requests.append(request)
        await asyncio.sleep(0)
        key = request.frame_count
        response = self.responses.get(key, self.default)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def store():
    return ProjectStore()


@pytest.fixture
def sampler(decoder_factory):
    return FrameSampler(decoder_factory=decoder_factory)


class TestProjectStore:
    def test_add_path(self, store):
        project = store.add("videos/kyoto.mp4")

        assert project.status == ProjectStatus.IDLE
        assert project.filename == "kyoto.mp4"
        assert project.source == Path("videos/kyoto.mp4")
        assert len(project.frames) == 0
        assert project.result is None
        assert store.get(project.id) == project
        assert project.id in store
        assert len(store) == 1

    def test_add_bytes_requires_filename(self, store):
        with pytest.raises(ValueError):
            store.add(b"data")
        assert store.add(b"data", "upload.mov").filename == "upload.mov"

    def test_list_keeps_insertion_order(self, store):
        ids = [store.add(f"{name}.mp4").id for name in "abc"]
        assert [p.id for p in store.list()] == ids

    def test_update_replaces_record(self, store):
        project = store.add("a.mp4")
        assert store.update_status(project.id, ProjectStatus.EXTRACTING)

        updated = store.get(project.id)
        assert updated.status == ProjectStatus.EXTRACTING
        assert project.status == ProjectStatus.IDLE
        assert updated is not project

    def test_status_cannot_skip_states(self, store):
        project = store.add("a.mp4")
        with pytest.raises(InvalidTransitionError):
            store.update_status(project.id, ProjectStatus.DONE)
        with pytest.raises(InvalidTransitionError):
            store.update_status(project.id, ProjectStatus.ERROR)

    def test_status_cannot_repeat(self, store):
        project = store.add("a.mp4")
        store.update_status(project.id, ProjectStatus.EXTRACTING)
        with pytest.raises(InvalidTransitionError):
            store.update_status(project.id, ProjectStatus.EXTRACTING)
        assert store.get(project.id).status == ProjectStatus.EXTRACTING

    def test_terminal_states(self, store):
        project = store.add("a.mp4")
        store.update_status(project.id, "extracting")
        store.update_status(project.id, "error")
        with pytest.raises(InvalidTransitionError):
            store.update_status(project.id, ProjectStatus.ANALYZING)

    def test_writes_after_remove_are_ignored(self, store):
        project = store.add("a.mp4")
        assert store.remove(project.id)
        assert not store.remove(project.id)
        assert not store.update_status(project.id, ProjectStatus.EXTRACTING)
        assert not store.update_fields(project.id, error="late")
        assert store.get(project.id) is None
        assert len(store) == 0

    def test_rename_and_display_name(self, store):
        project = store.add("a.mp4")
        assert store.get(project.id).display_name == "a.mp4"
        assert not store.rename(project.id, "   ")
        assert store.rename(project.id, " Osaka day 2 ")
        assert store.get(project.id).display_name == "Osaka day 2"

    def test_update_result(self, store):
        project = store.add("a.mp4")
        edited = AnalysisResult(title="Edited", summary="By hand")
        assert store.update_result(project.id, edited)
        assert store.get(project.id).result == edited


class TestProjectPipeline:
    def test_successful_run(self, store, sampler):
        analyzer = StubAnalyzer()
        pipeline = ProjectPipeline(store, sampler, analyzer, target_count=120)
        project = store.add("harbour.mp4")

        final = asyncio.run(pipeline.process(project.id))

        assert final.status == ProjectStatus.DONE
        assert final.error is None
        assert len(final.frames) == 24
        assert final.thumbnail is final.frames[0]
        event = final.result.timeline[0]
        assert event.best_frame_index == 3
        assert event.time_offset == final.frames[3].time_offset
        assert analyzer.requests[0].frame_count == 24

    def test_states_advance_in_order(self, store, sampler):
        seen = []

        class RecordingStore(ProjectStore):
            def update_fields(self, project_id, **fields):
                if "status" in fields:
                    seen.append(ProjectStatus(fields["status"]))
                return super().update_fields(project_id, **fields)

        recording = RecordingStore()
        pipeline = ProjectPipeline(recording, sampler, StubAnalyzer())
        project = recording.add("a.mp4")
        asyncio.run(pipeline.process(project.id))

        assert seen == [ProjectStatus.EXTRACTING, ProjectStatus.ANALYZING, ProjectStatus.DONE]

    def test_empty_response_keeps_frames(self, store, sampler):
        analyzer = StubAnalyzer(default="")
        pipeline = ProjectPipeline(store, sampler, analyzer)
        project = store.add("a.mp4")

        final = asyncio.run(pipeline.process(project.id))

        assert final.status == ProjectStatus.ERROR
        assert final.error
        assert final.result is None
        assert len(final.frames) == 24

    def test_analysis_exception_message_surfaced(self, store, sampler):
        analyzer = StubAnalyzer(default=PermissionError("API key not valid. Please pass a valid API key."))
        pipeline = ProjectPipeline(store, sampler, analyzer)
        project = store.add("a.mp4")

        final = asyncio.run(pipeline.process(project.id))

        assert final.status == ProjectStatus.ERROR
        assert final.error == "API key not valid. Please pass a valid API key."

    def test_exception_without_message_uses_type_name(self, store, sampler):
        pipeline = ProjectPipeline(store, sampler, StubAnalyzer(default=EmptyResponseError()))
        project = store.add("a.mp4")

        assert asyncio.run(pipeline.process(project.id)).error == "EmptyResponseError"

    def test_sampling_failure(self, store):
        factory = DecoderFactory(duration=0.0)
        analyzer = StubAnalyzer()
        pipeline = ProjectPipeline(store, FrameSampler(decoder_factory=factory), analyzer)
        project = store.add("broken.mp4")

        final = asyncio.run(pipeline.process(project.id))

        assert final.status == ProjectStatus.ERROR
        assert "duration" in final.error
        assert len(final.frames) == 0
        assert analyzer.requests == []

    def test_bytes_source_passes_suffix(self, store, decoder_factory, sampler):
        pipeline = ProjectPipeline(store, sampler, StubAnalyzer())
        project = store.add(b"\x00\x00", "upload.MOV")

        final = asyncio.run(pipeline.process(project.id))

        assert final.status == ProjectStatus.DONE
        assert decoder_factory.last.path.suffix == ".MOV"
        assert not decoder_factory.last.path.exists()

    def test_concurrent_projects_are_isolated(self, store):
        short = DecoderFactory(duration=5.0)
        long = DecoderFactory(duration=12.0)

        def factory(path):
            return short(path) if "short" in Path(path).name else long(path)

        # 5s video yields 10 frames, 12s video yields 24
        analyzer = StubAnalyzer(responses={10: ConnectionError("upstream unavailable")})
        pipeline = ProjectPipeline(store, FrameSampler(decoder_factory=factory), analyzer)
        failing = store.add("short.mp4")
        succeeding = store.add("long.mp4")

        results = asyncio.run(pipeline.process_many([failing.id, succeeding.id]))

        assert [p.status for p in results] == [ProjectStatus.ERROR, ProjectStatus.DONE]
        assert store.get(failing.id).error == "upstream unavailable"
        assert len(store.get(failing.id).frames) == 10
        done = store.get(succeeding.id)
        assert done.error is None
        assert done.result.title == "Harbour walk"
        assert done.result.timeline[0].time_offset == done.frames[3].time_offset

    def test_removed_during_analysis_is_not_resurrected(self, store, sampler):
        pipeline_holder = {}

        class DeletingAnalyzer(StubAnalyzer):
            async def analyze(self, request):
                store.remove(pipeline_holder["id"])
                return await super().analyze(request)

        pipeline = ProjectPipeline(store, sampler, DeletingAnalyzer())
        project = store.add("a.mp4")
        pipeline_holder["id"] = project.id

        assert asyncio.run(pipeline.process(project.id)) is None
        assert store.get(project.id) is None
        assert len(store) == 0

    def test_removed_during_failing_analysis(self, store, sampler):
        holder = {}

        class DeletingFailingAnalyzer(StubAnalyzer):
            async def analyze(self, request):
                store.remove(holder["id"])
                raise TimeoutError("too slow")

        pipeline = ProjectPipeline(store, sampler, DeletingFailingAnalyzer())
        project = store.add("a.mp4")
        holder["id"] = project.id

        assert asyncio.run(pipeline.process(project.id)) is None
        assert len(store) == 0

    def test_unknown_project(self, store, sampler):
        pipeline = ProjectPipeline(store, sampler, StubAnalyzer())
        assert asyncio.run(pipeline.process("missing")) is None

    def test_submit_and_join(self, store, sampler):
        pipeline = ProjectPipeline(store, sampler, StubAnalyzer())

        async def run():
            first = pipeline.submit("one.mp4")
            second = pipeline.submit(b"\x00", "two.webm")
            assert store.get(first.id).status == ProjectStatus.IDLE
            finished = await pipeline.join()
            return first, second, finished

        first, second, finished = asyncio.run(run())
        assert [p.id for p in finished] == [first.id, second.id]
        assert all(p.status == ProjectStatus.DONE for p in finished)

    @pytest.mark.parametrize("analyzer_response", [_response(), EmptyResponseError("The model returned no result")])
    def test_finished_project_is_not_processed_again(self, store, sampler, analyzer_response):
        analyzer = StubAnalyzer(default=analyzer_response)
        pipeline = ProjectPipeline(store, sampler, analyzer)
        project = store.add("again.mp4")

        first = asyncio.run(pipeline.process(project.id))
        second = asyncio.run(pipeline.process(project.id))

        assert first.status in (ProjectStatus.DONE, ProjectStatus.ERROR)
        assert second == first
        assert store.get(project.id) == first
        assert len(analyzer.requests) == 1

    def test_duplicate_processing_runs_once(self, store, sampler, decoder_factory):
        analyzer = StubAnalyzer()
        pipeline = ProjectPipeline(store, sampler, analyzer)
        project = store.add("twice.mp4")

        results = asyncio.run(pipeline.process_many([project.id, project.id]))

        assert len(analyzer.requests) == 1
        assert len(decoder_factory.decoders) == 1
        assert results[0].status == ProjectStatus.DONE
        assert results[1].status == ProjectStatus.EXTRACTING
        assert store.get(project.id).status == ProjectStatus.DONE
