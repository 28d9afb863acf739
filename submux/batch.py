"""
Batch driver.

Turns a folder (or a whole library) into one PipelineJob per matched
subtitle/video pair and runs them, one after another or on a small thread
pool. The two maintenance commands, flag normalization and subtitle
removal, walk every Matroska file of a folder the same way.

Every file is processed on its own: one failure is recorded in the report
and the batch moves on.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from submux.config import get_default_job_options, get_settings
from submux.container_mutator import remove_tracks_by_language
from submux.errors import FileIntegrityError, UnknownLanguageError
from submux.file_system_utils import safe_rename, wait_for_file_to_stabilize
from submux.flag_normalizer import FlagNormalizer
from submux.languages import get_language_spec
from submux.library_scan import (
    find_folders_with_subtitles,
    list_container_files,
    match_subtitles_to_videos,
)
from submux.logs_utils import log_title, safe_push_log, summarize_tool_error
from submux.pipeline import JobOptions, JobResult, PipelineJob, PipelineState, run_job


@dataclass(frozen=True)
class FileOutcome:
    """What happened to one file of a batch."""

    path: Path
    succeeded: bool
    changed: bool
    message: str
    state: Optional[PipelineState] = None

    @classmethod
    def from_job_result(cls, result: JobResult) -> "FileOutcome":
        if result.succeeded:
            message = "Subtitle merged and flags adjusted"
        else:
            message = result.error or "Failed"
        return cls(
            path=result.job.video_path,
            succeeded=result.succeeded,
            # The container is rewritten as soon as the merge stage ran
            changed=PipelineState.MERGED in result.completed_stages,
            message=message,
            state=result.state,
        )


@dataclass
class BatchReport:
    outcomes: List[FileOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failed(self) -> List[FileOutcome]:
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def changed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.changed)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def extend(self, other: "BatchReport") -> None:
        self.outcomes.extend(other.outcomes)

    def log_summary(self) -> None:
        safe_push_log("")
        log_title("📊 Summary")
        safe_push_log(
            f"✅ {len(self.succeeded)} succeeded, ❌ {len(self.failed)} failed, "
            f"✏️ {self.changed_count} file(s) changed"
        )
        for outcome in self.failed:
            safe_push_log(f"❌ {outcome.path.name}: {outcome.message}")


def _require_language(language_name: str) -> None:
    if get_language_spec(language_name) is None:
        raise UnknownLanguageError(language_name)


def _run_jobs(jobs: List[PipelineJob], max_workers: int) -> List[JobResult]:
    if max_workers <= 1 or len(jobs) <= 1:
        return [run_job(job) for job in jobs]

    # Jobs on the same video are serialized by the container lock
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(run_job, jobs))


def process_folder(
    subtitle_dir: Path,
    video_dir: Path,
    subtitle_language: str,
    audio_language: str,
    options: Optional[JobOptions] = None,
    max_workers: Optional[int] = None,
) -> BatchReport:
    """
    Match, rename and process every subtitle of a folder.

    Args:
        subtitle_dir: Folder holding the subtitles
        video_dir: Folder holding the videos (may be the same folder)
        subtitle_language: Target subtitle language name (e.g. "Persian")
        audio_language: Target audio language name (e.g. "English")
        options: Stage toggles (default: from settings)
        max_workers: Pool width (default: MAX_PARALLEL_JOBS)

    Returns:
        BatchReport with one outcome per matched pair

    Raises:
        UnknownLanguageError: either language name is not in the table
    """
    _require_language(subtitle_language)
    _require_language(audio_language)
    settings = get_settings()
    options = options or get_default_job_options()
    workers = max_workers if max_workers is not None else settings.MAX_PARALLEL_JOBS

    subtitle_dir = Path(subtitle_dir)
    video_dir = Path(video_dir)
    report = BatchReport()
    jobs: List[PipelineJob] = []
    claimed = set()

    for pair in match_subtitles_to_videos(subtitle_dir, video_dir):
        target = subtitle_dir / f"{pair.video_path.stem}.srt"
        if target in claimed:
            safe_push_log(
                f"⚠️ Another subtitle already matched {pair.video_path.name}, "
                f"skipping {pair.subtitle_path.name}"
            )
            continue

        try:
            if pair.subtitle_path != target:
                safe_rename(pair.subtitle_path, target)
                safe_push_log(f"✅ Renamed: {pair.subtitle_path.name} → {target.name}")
            if settings.WAIT_FOR_STABLE_FILES:
                wait_for_file_to_stabilize(pair.video_path)
                wait_for_file_to_stabilize(target)
        except FileIntegrityError as e:
            safe_push_log(f"❌ {e}. Skipping {pair.subtitle_path.name}")
            report.outcomes.append(
                FileOutcome(
                    path=pair.video_path,
                    succeeded=False,
                    changed=False,
                    message=str(e),
                )
            )
            continue

        claimed.add(target)
        jobs.append(
            PipelineJob(
                video_path=pair.video_path,
                subtitle_path=target,
                subtitle_language=subtitle_language,
                audio_language=audio_language,
                options=options,
            )
        )

    for result in _run_jobs(jobs, workers):
        report.outcomes.append(FileOutcome.from_job_result(result))
    return report


def process_library(
    root: Path,
    subtitle_language: str,
    audio_language: str,
    options: Optional[JobOptions] = None,
    max_workers: Optional[int] = None,
) -> BatchReport:
    """
    Process every folder of a library that holds subtitles.

    Subtitles and videos are expected side by side in each folder.
    """
    _require_language(subtitle_language)
    _require_language(audio_language)
    report = BatchReport()
    for folder in find_folders_with_subtitles(Path(root)):
        safe_push_log("")
        log_title(f"📁 {folder}")
        report.extend(
            process_folder(
                folder,
                folder,
                subtitle_language,
                audio_language,
                options=options,
                max_workers=max_workers,
            )
        )
    return report


def adjust_flags_in_folder(
    video_dir: Path, subtitle_language: str, audio_language: str
) -> BatchReport:
    """Normalize default/forced flags of every .mkv in a folder."""
    _require_language(subtitle_language)
    _require_language(audio_language)
    report = BatchReport()

    for video in list_container_files(Path(video_dir)):
        safe_push_log("")
        log_title(f"🎬 {video.name}")
        normalizer = FlagNormalizer(video, subtitle_language, audio_language)
        message = None
        try:
            ok = normalizer.adjust_flags()
        except Exception as e:
            ok = False
            message = summarize_tool_error(e)
            safe_push_log(f"❌ {video.name}: {message}")
        report.outcomes.append(
            FileOutcome(
                path=video,
                succeeded=ok,
                # mkvpropedit edits in place, assume something may have changed
                changed=True,
                message=message or ("Flags adjusted" if ok else "Flag adjustment failed"),
            )
        )
    return report


def remove_language_in_folder(video_dir: Path, language_name: str) -> BatchReport:
    """
    Remove every subtitle track of a language from every .mkv in a folder.

    Raises:
        UnknownLanguageError: before any file is touched
    """
    _require_language(language_name)
    report = BatchReport()

    for video in list_container_files(Path(video_dir)):
        safe_push_log(f"🗑️ Removing {language_name} subtitles from {video.name}")
        try:
            result = remove_tracks_by_language(video, language_name)
        except Exception as e:
            detail = summarize_tool_error(e)
            safe_push_log(f"❌ {video.name}: {detail}")
            report.outcomes.append(
                FileOutcome(path=video, succeeded=False, changed=False, message=detail)
            )
            continue
        report.outcomes.append(
            FileOutcome(
                path=video,
                succeeded=True,
                changed=result.changed,
                message=result.message,
            )
        )
    return report
