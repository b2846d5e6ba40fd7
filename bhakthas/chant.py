"""Mantra chant counting sessions.

A session counts repetitions towards a target through exactly one input
mode at a time:

* manual: the devotee presses a button (``increment``)
* voice: a speech recognizer delivers transcripts; any utterance holding a
  mantra keyword counts once
* audio: a clip plays to the end, counts once, and replays until the
  target is reached

Reaching the target completes the session once. Completion plays a tone,
appends an achievement to the local history and stops all input until
``reset``.
"""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from .errors import BusinessRuleError, ValidationError

logger = logging.getLogger(__name__)

PRESET_TARGETS = (9, 108, 1008)
MAX_TARGET = 100_000

MANTRA_KEYWORDS = frozenset({"om", "aum", "namah", "hare", "krishna", "rama", "shiva", "ganesha"})

MANUAL = "manual"
VOICE = "voice"
AUDIO = "audio"


class ModeUnavailableError(BusinessRuleError):
    status_code = 400
    code = "mode_unavailable"


@dataclass(frozen=True)
class TranscriptEvent:
    transcript: str


class SpeechRecognizer(Protocol):
    def start(self, on_result: Callable[[TranscriptEvent], None]) -> None: ...

    def stop(self) -> None: ...


class AudioPlayer(Protocol):
    def play(self) -> None: ...

    def pause(self) -> None: ...

    def rewind(self) -> None: ...


class AchievementHistory:
    """Completed sessions, kept in a JSON file."""

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)

    def entries(self) -> list[dict[str, object]]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable achievement history at %s", self.path)
            return []
        return data if isinstance(data, list) else []

    def append(self, target: int, completed_at: datetime) -> dict[str, object]:
        achievement = {
            "id": uuid.uuid4().hex,
            "target": target,
            "completed_at": completed_at.isoformat(),
        }
        entries = self.entries()
        entries.append(achievement)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".achievements-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(entries, handle, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            os.unlink(tmp_path)
            raise
        return achievement


def validate_target(target) -> int:
    if isinstance(target, bool):
        raise ValidationError("target must be a whole number")
    try:
        value = int(target)
    except (TypeError, ValueError):
        raise ValidationError("target must be a whole number") from None
    if not 1 <= value <= MAX_TARGET:
        raise ValidationError(f"target must be between 1 and {MAX_TARGET}")
    return value


def contains_mantra(transcript: str) -> bool:
    words = re.findall(r"[a-z]+", transcript.lower())
    return not MANTRA_KEYWORDS.isdisjoint(words)


class ChantSession:
    def __init__(
        self,
        target: int = 108,
        history: AchievementHistory | None = None,
        recognizer: SpeechRecognizer | None = None,
        player: AudioPlayer | None = None,
        audio_url: str | None = None,
        tone: Callable[[], None] | None = None,
    ) -> None:
        self.target = validate_target(target)
        self.history = history
        self.recognizer = recognizer
        self.player = player
        self.audio_url = audio_url
        self.tone = tone
        self.count = 0
        self.completed = False
        self.mode: str | None = None
        self.last_achievement: dict[str, object] | None = None

    @property
    def voice_available(self) -> bool:
        return self.recognizer is not None

    @property
    def audio_available(self) -> bool:
        return self.player is not None and bool(self.audio_url)

    def set_target(self, target) -> None:
        """Choose a new target; this starts the count over."""
        self.target = validate_target(target)
        self.reset()

    # -- input modes -------------------------------------------------------

    def _ensure_can_start(self) -> None:
        if self.completed:
            raise BusinessRuleError(
                f"You've already chanted {self.target} mantras. Reset to start again.",
                code="chant_completed",
            )

    def start_manual(self) -> None:
        self._ensure_can_start()
        self.stop()
        self.mode = MANUAL

    def start_voice(self) -> None:
        if not self.voice_available:
            raise ModeUnavailableError("Speech recognition is not supported here. Use manual counting instead.")
        self._ensure_can_start()
        self.stop()
        self.mode = VOICE
        self.recognizer.start(self.handle_transcript)

    def start_audio(self) -> None:
        if not self.audio_available:
            raise ModeUnavailableError("No audio is attached to this mantra.")
        self._ensure_can_start()
        self.stop()
        self.mode = AUDIO
        self.player.play()

    def stop(self) -> None:
        """Stop whichever input mode is active."""
        if self.mode == VOICE:
            self.recognizer.stop()
        elif self.mode == AUDIO:
            self.player.pause()
        self.mode = None

    # -- counting ----------------------------------------------------------

    def increment(self) -> int:
        if self.completed:
            raise BusinessRuleError(
                f"You've already chanted {self.target} mantras. Reset to start again.",
                code="chant_completed",
            )
        if self.mode not in (None, MANUAL):
            raise BusinessRuleError(f"Stop {self.mode} counting before counting manually", code="mode_active")
        self.mode = MANUAL
        self._advance()
        return self.count

    def handle_transcript(self, event: TranscriptEvent) -> bool:
        """Count one repetition if the utterance holds any mantra keyword."""
        if self.mode != VOICE or self.completed:
            return False
        if not contains_mantra(event.transcript):
            return False
        self._advance()
        return True

    def handle_playback_finished(self) -> bool:
        if self.mode != AUDIO or self.completed:
            return False
        self._advance()
        if not self.completed:
            self.player.rewind()
            self.player.play()
        return True

    def _advance(self) -> None:
        self.count += 1
        if self.count >= self.target:
            self.count = self.target
            self._complete()

    def _complete(self) -> None:
        self.completed = True
        self.stop()
        if self.tone is not None:
            self.tone()

        completed_at = datetime.now(timezone.utc)
        if self.history is not None:
            self.last_achievement = self.history.append(self.target, completed_at)
        else:
            self.last_achievement = {"target": self.target, "completed_at": completed_at.isoformat()}
        logger.info("Chant session completed: %s repetitions", self.target)

    def reset(self) -> None:
        self.stop()
        if self.player is not None:
            self.player.rewind()
        self.count = 0
        self.completed = False

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.target,
            "count": self.count,
            "completed": self.completed,
            "mode": self.mode,
            "voice_available": self.voice_available,
            "audio_available": self.audio_available,
        }
