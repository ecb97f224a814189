"""In-memory projects and the per-project analysis pipeline.

Every uploaded video becomes a `Project` held in a `ProjectStore`. A
`ProjectPipeline` drives one project at a time through sampling, analysis and
reconciliation. Several pipelines can run concurrently on one event loop;
they share nothing but the store, and every store write replaces a single
project record as a whole.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from vlogflow.ai.analyzer import Analyzer
from vlogflow.ai.reconcile import AnalysisResultReconciler
from vlogflow.ai.request import AnalysisRequestBuilder
from vlogflow.base.description import AnalysisResult
from vlogflow.base.exceptions import VlogFlowError
from vlogflow.base.frames import Frame, FrameSequence
from vlogflow.base.sampler import FrameSampler

__all__ = ["InvalidTransitionError", "Project", "ProjectPipeline", "ProjectStatus", "ProjectStore"]

logger = logging.getLogger(__name__)


class ProjectStatus(str, Enum):
    IDLE = "idle"
    EXTRACTING = "extracting"
    ANALYZING = "analyzing"
    DONE = "done"
    ERROR = "error"


_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.IDLE: frozenset({ProjectStatus.EXTRACTING}),
    ProjectStatus.EXTRACTING: frozenset({ProjectStatus.ANALYZING, ProjectStatus.ERROR}),
    ProjectStatus.ANALYZING: frozenset({ProjectStatus.DONE, ProjectStatus.ERROR}),
    ProjectStatus.DONE: frozenset(),
    ProjectStatus.ERROR: frozenset(),
}


class InvalidTransitionError(VlogFlowError):
    """Raised when a status change would skip or leave a terminal state."""

    def __init__(self, current: ProjectStatus, requested: ProjectStatus):
        super().__init__(f"Cannot move project from '{current.value}' to '{requested.value}'")
        self.current = current
        self.requested = requested


@dataclass(frozen=True)
class Project:
    """One uploaded video and everything derived from it.

    Attributes:
        id: Unique project id
        source: Path to the video file or its raw bytes
        filename: Original file name
        status: Current lifecycle state
        frames: Captured frames, empty until sampling finished
        result: Reconciled analysis, None until analysis finished
        error: Human readable failure message when status is error
        custom_name: Name chosen by the user
        created_at: Creation time as a Unix timestamp
    """

    id: str
    source: Path | bytes = field(repr=False)
    filename: str
    status: ProjectStatus = ProjectStatus.IDLE
    frames: FrameSequence = field(default_factory=FrameSequence, repr=False)
    result: AnalysisResult | None = field(default=None, repr=False)
    error: str | None = None
    custom_name: str | None = None
    created_at: float = field(default_factory=time.time)

    @property
    def display_name(self) -> str:
        return self.custom_name or self.filename

    @property
    def thumbnail(self) -> Frame | None:
        """First captured frame, used as the project cover."""
        return self.frames[0] if len(self.frames) else None


class ProjectStore:
    """Keyed, insertion ordered collection of projects.

    Writes to a project that was removed are ignored and report False, so a
    pipeline stage finishing after deletion cannot bring the project back.
    """

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    def __len__(self) -> int:
        return len(self._projects)

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._projects

    def add(self, source: str | Path | bytes, filename: str | None = None) -> Project:
        """Create a project in the idle state."""
        if isinstance(source, (bytes, bytearray)):
            source = bytes(source)
            if filename is None:
                raise ValueError("filename is required when the source is raw bytes")
        else:
            source = Path(source)
            filename = filename or source.name

        project = Project(id=uuid.uuid4().hex, source=source, filename=filename)
        self._projects[project.id] = project
        return project

    def get(self, project_id: str) -> Project | None:
        return self._projects.get(project_id)

    def list(self) -> list[Project]:
        return list(self._projects.values())

    def update_status(self, project_id: str, status: ProjectStatus) -> bool:
        return self.update_fields(project_id, status=status)

    def update_fields(self, project_id: str, **fields: Any) -> bool:
        """Replace the stored record of `project_id` with `fields` applied.

        Returns:
            False if the project no longer exists, True otherwise.

        Raises:
            InvalidTransitionError: If `fields` contains a status change the lifecycle does not allow.
        """
        project = self._projects.get(project_id)
        if project is None:
            return False

        status = fields.get("status")
        if status is not None:
            status = ProjectStatus(status)
            if status not in _TRANSITIONS[project.status]:
                raise InvalidTransitionError(project.status, status)
            fields["status"] = status

        self._projects[project_id] = dataclasses.replace(project, **fields)
        return True

    def rename(self, project_id: str, name: str) -> bool:
        name = name.strip()
        if not name:
            return False
        return self.update_fields(project_id, custom_name=name)

    def update_result(self, project_id: str, result: AnalysisResult) -> bool:
        """Store a user edited analysis result."""
        return self.update_fields(project_id, result=result)

    def remove(self, project_id: str) -> bool:
        return self._projects.pop(project_id, None) is not None


class ProjectPipeline:
    """Runs sampling, analysis and reconciliation for projects of a store.

    Failures of any stage put the project into the error state; frames that
    were already captured stay on the project. Nothing is retried.
    """

    def __init__(
        self,
        store: ProjectStore,
        sampler: FrameSampler,
        analyzer: Analyzer,
        builder: AnalysisRequestBuilder | None = None,
        reconciler: AnalysisResultReconciler | None = None,
        target_count: int | None = None,
    ):
        self.store = store
        self.sampler = sampler
        self.analyzer = analyzer
        self.builder = builder or AnalysisRequestBuilder()
        self.reconciler = reconciler or AnalysisResultReconciler()
        self.target_count = target_count
        self._tasks: dict[str, asyncio.Task[Project | None]] = {}

    def submit(self, source: str | Path | bytes, filename: str | None = None) -> Project:
        """Add a project and start processing it on the running event loop."""
        project = self.store.add(source, filename)
        self._tasks[project.id] = asyncio.get_running_loop().create_task(self.process(project.id))
        return project

    async def join(self) -> list[Project | None]:
        """Wait for all submitted projects to finish."""
        tasks, self._tasks = self._tasks, {}
        return list(await asyncio.gather(*tasks.values()))

    async def process_many(self, project_ids: Iterable[str]) -> list[Project | None]:
        """Process several projects concurrently. One failure does not affect the others."""
        return list(await asyncio.gather(*(self.process(project_id) for project_id in project_ids)))

    async def process(self, project_id: str) -> Project | None:
        """Run the pipeline for one project.

        Returns:
            The final project record, or None if the project was removed meanwhile. A project
            that has already left the idle state is returned as stored without being processed.
        """
        project = self.store.get(project_id)
        if project is None:
            logger.debug("Project %s does not exist, nothing to process", project_id)
            return None
        if project.status is not ProjectStatus.IDLE:
            logger.debug("Project %s is already %s, not processing it again", project_id, project.status.value)
            return project

        try:
            if not self.store.update_status(project_id, ProjectStatus.EXTRACTING):
                return self._removed(project_id, "extracting")

            suffix = Path(project.filename).suffix or ".mp4"
            frames = await self.sampler.sample(project.source, self.target_count, suffix=suffix)
            if not self.store.update_fields(project_id, frames=frames, status=ProjectStatus.ANALYZING):
                return self._removed(project_id, "sampling")

            request = self.builder.build(frames)
            raw = await self.analyzer.analyze(request)
            result = self.reconciler.reconcile(raw, frames)
            if not self.store.update_fields(project_id, result=result, status=ProjectStatus.DONE):
                return self._removed(project_id, "analysis")

            logger.info("Project %s (%s) done with %d events", project_id, project.filename, len(result.timeline))
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error("Project %s (%s) failed: %s", project_id, project.filename, message)
            if not self.store.update_fields(project_id, status=ProjectStatus.ERROR, error=message):
                return self._removed(project_id, "error reporting")

        return self.store.get(project_id)

    @staticmethod
    def _removed(project_id: str, stage: str) -> None:
        logger.debug("Project %s was removed before %s finished, dropping its result", project_id, stage)
        return None
