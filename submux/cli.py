"""
Headless command line for SubMux.

    submux --subs=./subs --videos=./videos --subLang=Persian --audioLang=English
    submux --library=/data/shows --subLang=Persian
    submux --adjustFlags --videos=./videos --subLang=Persian --audioLang=English
    submux --removeSubtitle --videos=./videos --subLang=Persian

Exit codes: 0 when every file succeeded, 1 when at least one failed,
2 on usage errors and unknown language names.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from submux.batch import (
    BatchReport,
    adjust_flags_in_folder,
    process_folder,
    process_library,
    remove_language_in_folder,
)
from submux.config import get_default_job_options, get_settings, print_config_summary
from submux.errors import UnknownLanguageError
from submux.integrations_utils import post_batch_actions
from submux.languages import list_language_names
from submux.logs_utils import safe_push_log
from submux.pipeline import JobOptions

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    p = argparse.ArgumentParser(
        prog="submux",
        description="Merge external subtitles into Matroska files and normalize track flags",
        epilog="Languages: " + ", ".join(list_language_names()),
    )
    p.add_argument("--subs", type=Path, help="Directory containing the subtitles (default: SUBTITLES_FOLDER)")
    p.add_argument("--videos", type=Path, help="Directory containing the videos (default: VIDEOS_FOLDER)")
    p.add_argument("--library", type=Path, help="Process every folder under this root that holds subtitles")
    p.add_argument("--subLang", default=settings.SUBTITLE_LANGUAGE, help="Subtitle language name, capitalized (e.g. Persian)")
    p.add_argument("--audioLang", default=settings.AUDIO_LANGUAGE, help="Audio language name, capitalized (e.g. English)")
    p.add_argument("--disableConvert", action="store_true", help="Skip the UTF-8 conversion stage")
    p.add_argument("--disableClean", action="store_true", help="Skip the ad cleaning stage")
    p.add_argument("--disableSync", action="store_true", help="Skip the audio sync stage")
    p.add_argument("--keepSubtitle", action="store_true", help="Keep the .srt file after merging")
    p.add_argument("--jobs", type=int, help="Parallel jobs on distinct videos (default: MAX_PARALLEL_JOBS)")

    commands = p.add_mutually_exclusive_group()
    commands.add_argument("--adjustFlags", action="store_true", help="Only normalize default/forced flags of every .mkv in --videos")
    commands.add_argument("--removeSubtitle", action="store_true", help="Remove every --subLang subtitle track from every .mkv in --videos")
    return p


def _job_options(args: argparse.Namespace) -> JobOptions:
    defaults = get_default_job_options()
    return JobOptions(
        should_convert=defaults.should_convert and not args.disableConvert,
        should_clean=defaults.should_clean and not args.disableClean,
        should_sync=defaults.should_sync and not args.disableSync,
        keep_subtitle_file=defaults.keep_subtitle_file or args.keepSubtitle,
    )


def _log_options(args: argparse.Namespace, options: JobOptions) -> None:
    safe_push_log("🛠️ Options:")
    safe_push_log(f"   subtitle language = {args.subLang}")
    safe_push_log(f"   audio language    = {args.audioLang}")
    safe_push_log(f"   convert = {options.should_convert}, clean = {options.should_clean}, "
                  f"sync = {options.should_sync}, keep subtitle = {options.keep_subtitle_file}")


def run(args: argparse.Namespace) -> BatchReport:
    settings = get_settings()
    video_dir = (args.videos or settings.VIDEOS_FOLDER).resolve()

    if args.adjustFlags:
        return adjust_flags_in_folder(video_dir, args.subLang, args.audioLang)
    if args.removeSubtitle:
        safe_push_log(
            f"This will remove all subtitles with the language \"{args.subLang}\" "
            f"from all video files in {video_dir}"
        )
        return remove_language_in_folder(video_dir, args.subLang)

    options = _job_options(args)
    _log_options(args, options)
    if args.library:
        return process_library(
            args.library.resolve(), args.subLang, args.audioLang, options, max_workers=args.jobs
        )

    subtitle_dir = args.subs.resolve() if args.subs else settings.SUBTITLES_FOLDER
    if args.videos and not args.subs:
        subtitle_dir = video_dir
    return process_folder(
        subtitle_dir, video_dir, args.subLang, args.audioLang, options, max_workers=args.jobs
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.jobs is not None and args.jobs < 1:
        parser.error("--jobs must be at least 1")
    if args.library and (args.adjustFlags or args.removeSubtitle):
        parser.error("--library only applies to subtitle processing")

    if get_settings().DEBUG:
        print_config_summary()

    try:
        report = run(args)
    except UnknownLanguageError as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_USAGE

    report.log_summary()
    post_batch_actions(report)
    return EXIT_OK if report.all_succeeded else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
