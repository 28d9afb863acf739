# Standard library imports
import re
import time
from pathlib import Path
from typing import List, Optional

# Third-party imports
import streamlit as st

from submux.batch import (
    BatchReport,
    adjust_flags_in_folder,
    process_folder,
    process_library,
    remove_language_in_folder,
)
from submux.config import get_settings, print_config_summary
from submux.errors import SubMuxError, UnknownLanguageError
from submux.file_system_utils import list_subdirs_recursive
from submux.flag_normalizer import summarize_flags
from submux.integrations_utils import post_batch_actions
from submux.languages import list_language_names
from submux.logs_utils import log_title, register_main_push_log, safe_push_log
from submux.pipeline import JobOptions
from submux.process_utils import check_required_tools, get_command_version
from submux.tmp_files import find_stale_temp_outputs

# === CONSTANTS ===

# Load settings once
settings = get_settings()
VIDEOS_FOLDER = settings.VIDEOS_FOLDER

# Print configuration summary in development mode
if __name__ == "__main__" or settings.DEBUG:
    print_config_summary()

# CSS Styles
LOGS_CONTAINER_STYLE = """
    height: 400px;
    overflow-y: auto;
    background-color: #0e1117;
    color: #fafafa;
    padding: 1rem;
    border-radius: 0.5rem;
    font-family: 'Source Code Pro', monospace;
    font-size: 14px;
    line-height: 1.4;
    white-space: pre-wrap;
    border: 1px solid #262730;
"""

ANSI_ESCAPE_PATTERN = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")

MODE_PROCESS = "🎞️ Process subtitles"
MODE_ADJUST = "🚩 Adjust flags"
MODE_REMOVE = "🗑️ Remove subtitle language"
MODES = [MODE_PROCESS, MODE_ADJUST, MODE_REMOVE]

LANGUAGE_NAMES = list_language_names()


def _language_index(name: str) -> int:
    try:
        return LANGUAGE_NAMES.index(name)
    except ValueError:
        return 0


def resolve_folder(subfolder: str) -> Path:
    """Selectbox value ("/" or a relative path) to an absolute folder"""
    if subfolder == "/":
        return VIDEOS_FOLDER
    return VIDEOS_FOLDER / subfolder


def report_rows(report: BatchReport) -> List[dict]:
    """Flatten a batch report for st.dataframe"""
    return [
        {
            "File": outcome.path.name,
            "Result": "✅" if outcome.succeeded else "❌",
            "Changed": "yes" if outcome.changed else "no",
            "State": outcome.state.value if outcome.state else "",
            "Details": outcome.message,
        }
        for outcome in report.outcomes
    ]


# === STREAMLIT UI CONFIGURATION ===

# Must be the first Streamlit command
st.set_page_config(
    page_title="SubMux",
    page_icon="🎬",
    layout="centered",
    initial_sidebar_state="collapsed",
)

# === SIDEBAR ===
with st.sidebar.expander("⚙️ System"):
    missing_tools = check_required_tools()
    if missing_tools:
        st.warning("Missing tools: " + ", ".join(missing_tools))
    else:
        st.success("All external tools found")
    if st.button("🔎 Show mkvmerge version", use_container_width=True):
        st.code(get_command_version(settings.MKVMERGE_PATH) or "unknown")

st.markdown(
    "<h1 style='text-align: center;'>🎬 SubMux</h1>",
    unsafe_allow_html=True,
)
st.caption("Merge subtitles into your Matroska files and fix default & forced tracks.")


# === SESSION ===
if "run_seq" not in st.session_state:
    st.session_state.run_seq = 0  # incremented at each execution

if "last_report" not in st.session_state:
    st.session_state.last_report = None


# === MODE ===
mode = st.radio("Action", MODES, horizontal=True)

# === FOLDERS ===
existing_subdirs = list_subdirs_recursive(VIDEOS_FOLDER, max_depth=2)
folder_options = ["/"] + existing_subdirs

video_subfolder = st.selectbox(
    "📁 Videos folder",
    options=folder_options,
    index=0,
    format_func=lambda x: "📁 Root folder (/)" if x == "/" else f"📁 {x}",
)
video_dir = resolve_folder(video_subfolder)

stale_outputs = find_stale_temp_outputs(video_dir)
if stale_outputs:
    st.warning(
        "Leftover temp files from an interrupted run: "
        + ", ".join(p.name for p in stale_outputs)
    )

library_mode = False
subtitle_dir: Optional[Path] = None
if mode == MODE_PROCESS:
    library_mode = st.checkbox(
        "📚 Whole library (every folder below the selected one that holds subtitles)",
        value=False,
    )
    if not library_mode:
        default_subs = (
            str(settings.SUBTITLES_FOLDER)
            if settings.SUBTITLES_FOLDER != settings.VIDEOS_FOLDER
            else str(video_dir)
        )
        subtitle_dir = Path(
            st.text_input("📝 Subtitles folder", value=default_subs).strip()
            or str(video_dir)
        )

# === LANGUAGES ===
col_sub, col_audio = st.columns(2)
with col_sub:
    subtitle_language = st.selectbox(
        "💬 Subtitle language" if mode != MODE_REMOVE else "💬 Language to remove",
        options=LANGUAGE_NAMES,
        index=_language_index(settings.SUBTITLE_LANGUAGE),
    )
with col_audio:
    audio_language = st.selectbox(
        "🔊 Audio language",
        options=LANGUAGE_NAMES,
        index=_language_index(settings.AUDIO_LANGUAGE),
        disabled=mode == MODE_REMOVE,
    )

# === STAGES ===
options = None
max_workers = settings.MAX_PARALLEL_JOBS
if mode == MODE_PROCESS:
    with st.expander("🛠️ Pipeline options", expanded=False):
        should_convert = st.checkbox("Convert subtitle to UTF-8", value=settings.SHOULD_CONVERT)
        should_clean = st.checkbox("Remove ads (subcleaner)", value=settings.SHOULD_CLEAN)
        should_sync = st.checkbox("Sync with audio (ffsubsync)", value=settings.SHOULD_SYNC)
        keep_subtitle = st.checkbox(
            "Keep subtitle file after merge", value=settings.KEEP_SUBTITLE_FILE
        )
        max_workers = int(
            st.number_input(
                "Parallel jobs",
                min_value=1,
                max_value=8,
                value=min(settings.MAX_PARALLEL_JOBS, 8),
                help="Distinct videos only, one video is never processed twice at once",
            )
        )
    options = JobOptions(
        should_convert=should_convert,
        should_clean=should_clean,
        should_sync=should_sync,
        keep_subtitle_file=keep_subtitle,
    )

# === RUN BUTTON ===
st.markdown("\n")
col1, col2, col3 = st.columns([1, 2, 1])
with col2:
    submitted = st.button(
        f"🚀 &nbsp; {mode.split(' ', 1)[1]}",
        type="primary",
        use_container_width=True,
    )

st.markdown("---")
status_placeholder = st.empty()
results_placeholder = st.container()

# === Logs (PLACED AT BOTTOM OF PAGE) ===
st.markdown("\n")
st.markdown("### 📜 Logs")
logs_placeholder = st.empty()  # black scrollable window (bottom)
download_btn_placeholder = st.empty()  # "Download logs" button (bottom)

ALL_LOGS: list[str] = []  # global buffer (complete log content)


def render_download_button():
    # dynamic rendering with current logs
    if ALL_LOGS:
        download_btn_placeholder.download_button(
            "⬇️ Download logs",
            data="\n".join(ALL_LOGS),
            file_name="submux_logs.txt",
            mime="text/plain",
            # Unique key with log count
            key=f"download_logs_btn_{st.session_state.run_seq}_{len(ALL_LOGS)}",
        )


def push_log(line: str):
    clean_line = ANSI_ESCAPE_PATTERN.sub("", line.rstrip("\n"))
    clean_line = "".join(
        char for char in clean_line if ord(char) >= 32 or char in "\t\n"
    )
    ALL_LOGS.append(clean_line)

    with logs_placeholder.container():
        logs_content = (
            "\n".join(ALL_LOGS[-400:])
            .replace("&", "&amp;")  # Escape & first
            .replace("<", "&lt;")
            .replace(">", "&gt;")
            .replace('"', "&quot;")
            .replace("'", "&#x27;")
        )
        st.markdown(
            f'<div style="{LOGS_CONTAINER_STYLE}">{logs_content}</div>',
            unsafe_allow_html=True,
        )

    render_download_button()


# Register this push_log function for use by other modules
register_main_push_log(push_log)


def run_selected_action() -> Optional[BatchReport]:
    if not video_dir.is_dir():
        status_placeholder.error(f"❌ Folder not found: {video_dir}")
        return None

    if mode == MODE_ADJUST:
        log_title(f"🚩 Adjusting flags in {video_dir}")
        return adjust_flags_in_folder(video_dir, subtitle_language, audio_language)
    if mode == MODE_REMOVE:
        log_title(f"🗑️ Removing {subtitle_language} subtitles in {video_dir}")
        return remove_language_in_folder(video_dir, subtitle_language)
    if library_mode:
        log_title(f"📚 Processing library {video_dir}")
        return process_library(
            video_dir, subtitle_language, audio_language, options, max_workers=max_workers
        )
    log_title(f"🎞️ Processing {subtitle_dir} → {video_dir}")
    return process_folder(
        subtitle_dir,
        video_dir,
        subtitle_language,
        audio_language,
        options,
        max_workers=max_workers,
    )


# === ACTION ===
if submitted:
    # new execution -> new button key (avoid Streamlit duplicates)
    st.session_state.run_seq += 1
    ALL_LOGS.clear()

    start_time = time.time()
    report = None
    with st.spinner("Working..."):
        try:
            report = run_selected_action()
        except UnknownLanguageError as e:
            status_placeholder.error(f"❌ {e}")
        except SubMuxError as e:
            safe_push_log(f"❌ {e}")
            status_placeholder.error(f"❌ {e}")

    if report is not None:
        elapsed = time.time() - start_time
        report.log_summary()
        post_batch_actions(report, log=push_log)
        st.session_state.last_report = report

        if not report.outcomes:
            status_placeholder.info("Nothing to do in this folder.")
        elif report.all_succeeded:
            status_placeholder.success(
                f"✅ {len(report.succeeded)} file(s) done in {elapsed:.1f}s"
            )
        else:
            status_placeholder.warning(
                f"⚠️ {len(report.failed)} of {len(report.outcomes)} file(s) failed "
                f"({elapsed:.1f}s)"
            )

# === RESULTS ===
last_report: Optional[BatchReport] = st.session_state.last_report
if last_report is not None and last_report.outcomes:
    with results_placeholder:
        st.dataframe(report_rows(last_report), use_container_width=True, hide_index=True)

        changed = [o.path for o in last_report.outcomes if o.changed and o.path.exists()]
        if changed:
            with st.expander("🔍 Current tracks of changed files", expanded=False):
                for path in changed:
                    st.markdown(f"**{path.name}**")
                    try:
                        st.code("\n".join(summarize_flags(path)) or "(no tracks)")
                    except SubMuxError as e:
                        st.error(f"❌ {e}")
