"""
Track flag normalization.

Given one target language for subtitles and one for audio, decides for every
track whether its default/forced flags must change, applies the change with
mkvpropedit and reads the container back to check it took.

Rules, evaluated per track:

    subtitles  matches target            -> default+forced, name "Forced"
               other, flagged or "forced" -> cleared, name ""
    audio      matches target, not commentary -> default+forced, name "Forced"
               other and (commentary or flagged) -> cleared, name ""
               commentary in target language  -> left alone
    video      never touched

Tracks are always addressed by uid; the positional id is resolved again
right before each edit.
"""

from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Union

from submux.container_inspector import (
    Track,
    TrackType,
    find_track_by_uid,
    get_tracks_by_type,
)
from submux.container_mutator import edit_track_flags
from submux.errors import SubMuxError
from submux.languages import is_language_match
from submux.logs_utils import describe_track, safe_push_log, summarize_tool_error

FORCED_TRACK_NAME = "Forced"
CLEARED_TRACK_NAME = ""


class FlagAction(Enum):
    KEEP = "keep"
    PROMOTE = "promote"
    DEMOTE = "demote"


def _decide_subtitle(track: Track, target_language: str) -> FlagAction:
    if is_language_match(track.language_code, target_language):
        if track.is_default and track.is_forced:
            return FlagAction.KEEP
        return FlagAction.PROMOTE
    if track.is_default or track.is_forced or track.name_mentions_forced:
        return FlagAction.DEMOTE
    return FlagAction.KEEP


def _decide_audio(track: Track, target_language: str) -> FlagAction:
    matched = is_language_match(track.language_code, target_language)
    if matched and not track.is_commentary:
        if track.is_default and track.is_forced:
            return FlagAction.KEEP
        return FlagAction.PROMOTE
    if not matched and (track.is_commentary or track.is_default or track.is_forced):
        return FlagAction.DEMOTE
    # Commentary in the target language is never promoted
    return FlagAction.KEEP


def _decide_video(track: Track, target_language: str) -> FlagAction:
    return FlagAction.KEEP


_RULES: Dict[TrackType, Callable[[Track, str], FlagAction]] = {
    TrackType.SUBTITLES: _decide_subtitle,
    TrackType.AUDIO: _decide_audio,
    TrackType.VIDEO: _decide_video,
}


def decide_flag_action(track: Track, target_language: str) -> FlagAction:
    """What the rule table wants done with one track."""
    try:
        rule = _RULES[track.type]
    except KeyError:
        raise ValueError(f"No flag rule for track type {track.type!r}") from None
    return rule(track, target_language)


class FlagNormalizer:
    """Normalizes default/forced flags of one container."""

    def __init__(
        self,
        video_path: Union[str, Path],
        subtitle_language: str,
        audio_language: str,
    ):
        self.video_path = Path(video_path)
        self.subtitle_language = subtitle_language
        self.audio_language = audio_language

    def adjust_flags(self) -> bool:
        """Run the audio pass then the subtitle pass; True only if both succeed."""
        audio_ok = self.adjust_audio_flags()
        subtitles_ok = self.adjust_subtitle_flags()
        return audio_ok and subtitles_ok

    def adjust_subtitle_flags(self) -> bool:
        """
        Make the target-language subtitle the default+forced one.

        Returns:
            bool: True when done (or nothing to do), False when an edit or its
            verification failed
        """
        try:
            tracks = get_tracks_by_type(self.video_path, TrackType.SUBTITLES)
        except SubMuxError as e:
            safe_push_log(f"🚨 Error adjusting subtitle flags: {summarize_tool_error(e)}")
            return False

        if not tracks:
            return True

        for track in tracks:
            action = decide_flag_action(track, self.subtitle_language)
            if action is FlagAction.KEEP:
                continue
            if action is FlagAction.DEMOTE:
                safe_push_log(
                    f"‼️ Subtitle {describe_track(track)} is flagged but is not "
                    f"{self.subtitle_language}, clearing default & forced"
                )
            if not self._apply(track, action):
                safe_push_log(
                    f"⚠️ Failed to {action.value} subtitle {describe_track(track)}"
                )
                return False
            if action is FlagAction.PROMOTE:
                safe_push_log(
                    f"✅ Language {self.subtitle_language} is set as default & forced Subtitle"
                )
        return True

    def adjust_audio_flags(self) -> bool:
        """
        Make the target-language, non-commentary audio the default+forced one.

        Returns:
            bool: False when the video has no audio, when no audio track is in
            the target language, or when an edit or its verification failed
        """
        try:
            tracks = get_tracks_by_type(self.video_path, TrackType.AUDIO)
        except SubMuxError as e:
            safe_push_log(f"❌ Error adjusting audio flags: {summarize_tool_error(e)}")
            return False

        if not tracks:
            safe_push_log("⚠️ No audio tracks found in the video file.")
            return False

        found_target = False
        for track in tracks:
            if track.is_commentary:
                safe_push_log(f"⚠️ Commentary audio: {describe_track(track)}")

            action = decide_flag_action(track, self.audio_language)
            if not track.is_commentary and is_language_match(
                track.language_code, self.audio_language
            ):
                found_target = True
            if action is FlagAction.KEEP:
                continue

            if not self._apply(track, action):
                safe_push_log(f"⚠️ Failed to {action.value} audio {describe_track(track)}")
                return False
            if action is FlagAction.PROMOTE:
                safe_push_log(
                    f"✅ Language {self.audio_language} is set as default & forced Audio"
                )
            else:
                safe_push_log(
                    f"✅ {describe_track(track)} removed from default & forced Audio"
                )

        if not found_target:
            safe_push_log(f"⚠️ No {self.audio_language} audio track in {self.video_path.name}")
            return False
        return True

    def verify_flags(self, uid: int, expect_default: bool, expect_forced: bool) -> bool:
        """Re-read one track by uid and compare both flags with what was asked."""
        try:
            track = find_track_by_uid(self.video_path, uid)
        except SubMuxError as e:
            safe_push_log(f"❌ Error verifying flags for track {uid}: {e}")
            return False

        if track is None:
            safe_push_log(f"⚠️ Track with UID {uid} not found in the file.")
            return False

        if track.is_default == expect_default and track.is_forced == expect_forced:
            return True

        safe_push_log(f"⚠️ Flags for track {uid} are not correctly set.")
        safe_push_log(f"- Default Track: {'Yes' if track.is_default else 'No'}")
        safe_push_log(f"- Forced Track: {'Yes' if track.is_forced else 'No'}")
        return False

    def _apply(self, track: Track, action: FlagAction) -> bool:
        promote = action is FlagAction.PROMOTE
        name = FORCED_TRACK_NAME if promote else CLEARED_TRACK_NAME
        try:
            edit_track_flags(self.video_path, track.uid, promote, promote, name)
        except SubMuxError as e:
            safe_push_log(f"❌ Error editing flags for UID {track.uid}: {summarize_tool_error(e)}")
            return False
        return self.verify_flags(track.uid, promote, promote)


def summarize_flags(video_path: Union[str, Path]) -> List[str]:
    """Current audio/subtitle tracks as display lines (used by the UI report)."""
    lines = []
    for track_type in (TrackType.AUDIO, TrackType.SUBTITLES):
        for track in get_tracks_by_type(video_path, track_type):
            lines.append(describe_track(track))
    return lines
