"""Command line entry point: analyze local videos into Markdown travel guides."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from vlogflow.ai.analyzer import VideoAnalyzer
from vlogflow.ai.request import AnalysisRequestBuilder, GenerationSettings
from vlogflow.base import progress
from vlogflow.base.sampler import FrameSampler
from vlogflow.config import get_analysis_config, get_sampling_config
from vlogflow.export import directions_url, format_time, to_markdown
from vlogflow.project import Project, ProjectPipeline, ProjectStatus, ProjectStore
from vlogflow.utils.logger import setup_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vlogflow", description="Turn travel videos into Markdown guides")
    parser.add_argument("videos", nargs="+", type=Path, help="video files to analyze")
    parser.add_argument("-o", "--output", dest="output_dir", type=Path, default=Path("."),
                        help="directory for the generated Markdown files")
    parser.add_argument("-n", "--frames", dest="target_count", type=int,
                        help="maximum number of frames sampled per video")
    parser.add_argument("--backend", choices=VideoAnalyzer.SUPPORTED_BACKENDS, help="analysis backend")
    parser.add_argument("--model", help="model name for the analysis backend")
    parser.add_argument("--timeout", type=float, help="seconds allowed for one analysis request")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging and progress bars")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> list[Project | None]:
    analysis_config = get_analysis_config()
    store = ProjectStore()
    pipeline = ProjectPipeline(
        store,
        sampler=FrameSampler.from_config(get_sampling_config()),
        analyzer=VideoAnalyzer(
            backend=args.backend,
            model=args.model,
            timeout=args.timeout,
            config=analysis_config,
        ),
        builder=AnalysisRequestBuilder(
            GenerationSettings(
                temperature=analysis_config.temperature,
                thinking_budget=analysis_config.thinking_budget,
            )
        ),
        target_count=args.target_count,
    )
    for video in args.videos:
        pipeline.submit(video)
    return await pipeline.join()


def _guide_path(project: Project, output_dir: Path, taken: set[Path]) -> Path:
    """Pick `<stem>.md`, adding a numeric suffix when another video of this run already uses it."""
    stem = Path(project.display_name).stem or "travel-guide"
    path = output_dir / f"{stem}.md"
    counter = 2
    while path in taken:
        path = output_dir / f"{stem}-{counter}.md"
        counter += 1
    taken.add(path)
    return path


def _write_guide(project: Project, path: Path) -> Path:
    if project.result is None:
        raise ValueError(f"Project {project.id} has no analysis result to export")
    path.write_text(to_markdown(project.result), encoding="utf-8")
    return path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logger("debug" if args.verbose else None)
    progress.configure(progress=args.verbose)
    args.output_dir.mkdir(parents=True, exist_ok=True)

    projects = asyncio.run(_run(args))

    failed = 0
    taken: set[Path] = set()
    for project in projects:
        if project is None:
            continue
        if project.status == ProjectStatus.DONE and project.result is not None:
            path = _write_guide(project, _guide_path(project, args.output_dir, taken))
            span = format_time(project.frames[-1].time_offset) if len(project.frames) else "0:00"
            print(f"{project.filename}: {len(project.frames)} frames up to {span} -> {path}")
            route = directions_url(project.result)
            if route:
                print(f"  route: {route}")
        else:
            failed += 1
            print(f"{project.filename}: {project.error}", file=sys.stderr)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
