"""
FORMCOACH Speech Adapter

Voices announcements from the feedback outbox without blocking the frame
loop. pyttsx3 hands out one engine per driver for the whole process, so a
single SpeechWorker owns that engine and the only thread that drives it.
Every coaching session talks to the worker through its own SpeechAdapter:

- each session keeps at most one pending announcement (newest wins)
- a new announcement from a session cuts off that session's own utterance
- sessions never cancel each other; their announcements are spoken in turn

If the speech engine cannot start (no audio stack, no voices) speech is
disabled for the process and a warning is logged once.
"""

import logging
import itertools
import threading
from collections import OrderedDict
from typing import Any, Callable, Optional

from core.config import Settings, settings as default_settings

from coach_service.models.feedback import FeedbackEvent

logger = logging.getLogger(__name__)

# pyttsx3 default rate is ~200 wpm; SPEECH_RATE scales it
BASE_WORDS_PER_MINUTE = 160

_owner_ids = itertools.count(1)


def _pyttsx3_engine() -> Any:
    import pyttsx3
    return pyttsx3.init()


class SpeechWorker:
    """
    The process-wide TTS thread.

    Pending announcements are keyed by owner (one slot per session) and
    spoken oldest-owner first.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        engine_factory: Callable[[], Any] = _pyttsx3_engine,
    ):
        self.config = config or default_settings
        self._engine_factory = engine_factory
        self._engine: Any = None
        self._available = True
        self._stopped = False
        self._pending: "OrderedDict[int, FeedbackEvent]" = OrderedDict()
        self._current_owner: Optional[int] = None
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._thread = threading.Thread(target=self._worker, name="formcoach-speech", daemon=True)
        self._thread.start()

    @property
    def available(self) -> bool:
        return self._available and not self._stopped

    def submit(self, owner: int, event: FeedbackEvent) -> None:
        """Queue an announcement, superseding the owner's unspoken or in-flight one."""
        if not self.available:
            return
        with self._lock:
            self._pending.pop(owner, None)
            self._pending[owner] = event
            if self._current_owner == owner:
                self._stop_engine()
        self._wakeup.set()

    def cancel(self, owner: int) -> None:
        """Drop the owner's pending text and stop its utterance, if speaking."""
        with self._lock:
            self._pending.pop(owner, None)
            if self._current_owner == owner:
                self._stop_engine()

    def shutdown(self) -> None:
        self._stopped = True
        with self._lock:
            self._pending.clear()
            if self._current_owner is not None:
                self._stop_engine()
        self._wakeup.set()

    def _stop_engine(self):
        try:
            self._engine.stop()
        except Exception as e:
            logger.debug(f"Speech stop failed: {e}")

    def _init_engine(self) -> bool:
        try:
            engine = self._engine_factory()
            engine.setProperty("rate", int(BASE_WORDS_PER_MINUTE * self.config.SPEECH_RATE))
            self._select_voice(engine)
            self._engine = engine
            logger.info(f"🔊 Speech engine ready ({self.config.LOCALE})")
            return True
        except Exception as e:
            logger.warning(f"⚠️ Speech unavailable, continuing without voice: {e}")
            self._available = False
            return False

    def _select_voice(self, engine: Any):
        """Prefer a voice matching the app locale; keep the default otherwise."""
        lang = self.config.LOCALE.split("-")[0].lower()
        try:
            voices = engine.getProperty("voices") or []
        except Exception:
            return
        for voice in voices:
            languages = [str(l).lower() for l in (getattr(voice, "languages", None) or [])]
            haystack = " ".join(languages + [str(getattr(voice, "id", "")).lower()])
            if lang in haystack:
                engine.setProperty("voice", voice.id)
                return

    def _next(self) -> Optional[FeedbackEvent]:
        with self._lock:
            if self._stopped or not self._pending:
                return None
            owner, event = self._pending.popitem(last=False)
            self._current_owner = owner
            return event

    def _worker(self):
        if not self._init_engine():
            return

        while not self._stopped:
            self._wakeup.wait()
            self._wakeup.clear()

            event = self._next()
            while event is not None:
                try:
                    logger.debug(f"🔊 TTS: {event.text}")
                    self._engine.say(event.text)
                    self._engine.runAndWait()
                except Exception as e:
                    logger.warning(f"⚠️ Speech failed, disabling voice: {e}")
                    self._available = False
                    return
                finally:
                    with self._lock:
                        self._current_owner = None
                event = self._next()


class SpeechAdapter:
    """
    One session's handle on the shared SpeechWorker.

    Usage::

        speaker = SpeechAdapter(worker)
        speaker.say(event)   # returns immediately
        speaker.cancel()     # drop this session's text and stop speaking it
        speaker.shutdown()   # session over; the worker keeps running
    """

    def __init__(self, worker: SpeechWorker):
        self.worker = worker
        self._owner = next(_owner_ids)
        self._closed = False

    @property
    def available(self) -> bool:
        return self.worker.available and not self._closed

    def say(self, event: FeedbackEvent) -> None:
        if self._closed:
            return
        self.worker.submit(self._owner, event)

    def cancel(self) -> None:
        self.worker.cancel(self._owner)

    def shutdown(self) -> None:
        self._closed = True
        self.cancel()


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_worker_instance: Optional[SpeechWorker] = None
_worker_lock = threading.Lock()

def get_speech_worker(config: Optional[Settings] = None) -> SpeechWorker:
    """Get or create the process-wide speech worker."""
    global _worker_instance
    with _worker_lock:
        if _worker_instance is None:
            _worker_instance = SpeechWorker(config, engine_factory=_pyttsx3_engine)
        return _worker_instance


def shutdown_speech() -> None:
    """Stop the process-wide speech worker, if one was started."""
    global _worker_instance
    with _worker_lock:
        if _worker_instance is not None:
            _worker_instance.shutdown()
            _worker_instance = None


def create_speaker(config: Optional[Settings] = None) -> Optional[SpeechAdapter]:
    """Speech handle for a new session, or None when speech is disabled."""
    config = config or default_settings
    if not config.SPEECH_ENABLED:
        return None
    return SpeechAdapter(get_speech_worker(config))
