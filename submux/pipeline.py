"""
Per-pair processing pipeline.

One PipelineJob takes a matched (video, subtitle) pair through

    START -> CONVERTED -> CLEANED -> SYNCED -> MERGED -> FLAGS_ADJUSTED -> DONE

A disabled stage counts as a success and the state still advances. The
first stage that fails (returns false or raises) moves the job to FAILED
and the job is abandoned. Nothing is retried and no error leaves run_job,
so one job never stops a batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from submux.container_mutator import container_lock, merge_subtitle_into_container
from submux.errors import SubMuxError
from submux.flag_normalizer import FlagNormalizer
from submux.languages import get_language_code_from_name
from submux.logs_utils import log_separator, safe_push_log, summarize_tool_error
from submux.subtitles_utils import (
    clean_ads,
    convert_to_utf8,
    sync_with_video,
    validate_subtitle_file,
)
from submux.tmp_files import is_hidden_or_resource_fork


class PipelineState(Enum):
    START = "start"
    CONVERTED = "converted"
    CLEANED = "cleaned"
    SYNCED = "synced"
    MERGED = "merged"
    FLAGS_ADJUSTED = "flags_adjusted"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class JobOptions:
    should_convert: bool = True
    should_clean: bool = True
    should_sync: bool = True
    keep_subtitle_file: bool = False


@dataclass(frozen=True)
class PipelineJob:
    """One matched pair of files. The job owns its video path while it runs."""

    video_path: Path
    subtitle_path: Path
    subtitle_language: str
    audio_language: str
    options: JobOptions = field(default_factory=JobOptions)


@dataclass
class JobResult:
    job: PipelineJob
    state: PipelineState = PipelineState.START
    failed_stage: Optional[PipelineState] = None
    error: Optional[str] = None
    completed_stages: List[PipelineState] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE


# === STAGES ===
# Each stage returns True on success; exceptions are handled by run_job.


def _convert(job: PipelineJob) -> bool:
    if is_hidden_or_resource_fork(job.subtitle_path):
        raise SubMuxError(f"Skipping Apple resource fork file: {job.subtitle_path.name}")
    return convert_to_utf8(job.subtitle_path) and validate_subtitle_file(
        job.subtitle_path
    )


def _clean(job: PipelineJob) -> bool:
    return clean_ads(job.subtitle_path) == 0


def _sync(job: PipelineJob) -> bool:
    return sync_with_video(job.video_path, job.subtitle_path) == 0


def _merge(job: PipelineJob) -> bool:
    language_code = get_language_code_from_name(job.subtitle_language) or "und"
    merge_subtitle_into_container(
        job.video_path,
        job.subtitle_path,
        language_code=language_code,
        track_title=job.subtitle_language,
        keep_subtitle_file=job.options.keep_subtitle_file,
    )
    safe_push_log(f"✅ Merged {job.subtitle_language} subtitle.")
    return True


def _adjust_flags(job: PipelineJob) -> bool:
    normalizer = FlagNormalizer(
        job.video_path,
        subtitle_language=job.subtitle_language,
        audio_language=job.audio_language,
    )
    if not normalizer.adjust_flags():
        return False
    safe_push_log(f"✅ Adjusted flags for: {job.video_path.name}")
    return True


# (target state, enabled?, stage function, label used in failure logs)
StageSpec = Tuple[
    PipelineState, Callable[[JobOptions], bool], Callable[[PipelineJob], bool], str
]

STAGES: List[StageSpec] = [
    (PipelineState.CONVERTED, lambda o: o.should_convert, _convert, "Conversion"),
    (PipelineState.CLEANED, lambda o: o.should_clean, _clean, "Cleaning"),
    (PipelineState.SYNCED, lambda o: o.should_sync, _sync, "Syncing"),
    (PipelineState.MERGED, lambda o: True, _merge, "Merging"),
    (PipelineState.FLAGS_ADJUSTED, lambda o: True, _adjust_flags, "Flag adjustment"),
]


def run_job(job: PipelineJob, stages: Optional[List[StageSpec]] = None) -> JobResult:
    """
    Run one job to completion or first failure.

    Args:
        job: The matched pair and its options
        stages: Stage table override (defaults to STAGES)

    Returns:
        JobResult whose state is DONE or FAILED
    """
    result = JobResult(job=job)
    log_separator()
    safe_push_log(f"🎬 {job.video_path.name} ← {job.subtitle_path.name}")

    with container_lock(job.video_path):
        for target_state, enabled, stage, label in stages or STAGES:
            if enabled(job.options):
                detail = None
                try:
                    ok = stage(job)
                except Exception as e:
                    # Any stage error fails this job only
                    ok = False
                    detail = summarize_tool_error(e)
                if not ok:
                    result.failed_stage = target_state
                    result.state = PipelineState.FAILED
                    result.error = detail or f"{label} failed"
                    safe_push_log(
                        f"❌ {label} failed. Skipping subtitle."
                        + (f" ({detail})" if detail else "")
                    )
                    return result
            result.state = target_state
            result.completed_stages.append(target_state)

    result.state = PipelineState.DONE
    return result
