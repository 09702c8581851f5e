"""Speech capability seam and answer checking.

Recognition and synthesis are supplied by the host; when either is
missing the learner silently falls back to keyboard input.
"""

from collections.abc import AsyncIterator, Iterable
from typing import Protocol, runtime_checkable

import structlog

from vocab_card_tracker.analysis.normalization import compare_strict, normalize_loose
from vocab_card_tracker.models.progress import InputMethod

logger = structlog.get_logger()


@runtime_checkable
class SpeechRecognizer(Protocol):
    @property
    def is_available(self) -> bool: ...

    def recognize(self) -> AsyncIterator[str]:
        """Yield transcript alternatives as they arrive."""
        ...


@runtime_checkable
class SpeechSynthesizer(Protocol):
    @property
    def is_available(self) -> bool: ...

    def speak(self, text: str, language: str) -> None: ...

    def cancel(self) -> None: ...


class NullRecognizer:
    """Stand-in used when the host has no speech recognition."""

    is_available = False

    async def recognize(self) -> AsyncIterator[str]:
        return
        yield


class NullSynthesizer:
    is_available = False

    def speak(self, text: str, language: str) -> None:
        logger.debug("speech_output_unavailable", text=text, language=language)

    def cancel(self) -> None:
        pass


def resolve_input_method(recognizer: SpeechRecognizer | None) -> InputMethod:
    """Pick speech when a recognizer is usable, keyboard otherwise."""
    if recognizer is not None and recognizer.is_available:
        return InputMethod.SPEECH
    return InputMethod.KEYBOARD


def check_spoken_answer(transcripts: Iterable[str], target: str) -> bool:
    """True if any recognizer alternative matches the target loosely."""
    expected = normalize_loose(target)
    return any(normalize_loose(t) == expected for t in transcripts)


def check_typed_answer(text: str, target: str) -> bool:
    return compare_strict(text, target)


async def listen_for_answer(recognizer: SpeechRecognizer, target: str) -> bool | None:
    """Consume transcripts until one matches the target.

    Returns:
        True on the first match, False if the stream ended without one,
        None if no recognizer is available.
    """
    if not recognizer.is_available:
        return None
    heard = []
    async for transcript in recognizer.recognize():
        heard.append(transcript)
        if check_spoken_answer([transcript], target):
            logger.debug("spoken_answer_matched", transcript=transcript)
            return True
    logger.debug("spoken_answer_missed", heard=heard)
    return False
