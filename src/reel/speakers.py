"""Speaker extraction and voice assignment for narration scripts.

All functions are pure: they take the current speaker list and return a new one.
"""

import re
from typing import Optional, Sequence

from models.speaker import Speaker

# Gemini prebuilt voices offered for narration
TTS_VOICES = (
    "Aoede",
    "Orus",
    "Kore",
    "Charon",
    "Puck",
    "Fenrir",
    "Zephyr",
    "Calypso",
    "Ligeia",
    "Tiamat",
    "Typhon",
)

# Voices handed out, in order, to the first speakers added by hand
PREFERRED_VOICES = ("Aoede", "Orus", "Kore", "Charon")

DEFAULT_SPEAKER_NAME = "Speaker 1"
DEFAULT_VOICE = "Aoede"

# A label is one word, optionally followed by a second word ("Host:", "Speaker 2:")
SPEAKER_LABEL_RE = re.compile(r"^([A-Za-z0-9_]+(?: [A-Za-z0-9_]+)?):", re.MULTILINE)


def default_speakers() -> list[Speaker]:
    return [Speaker(id=1, name=DEFAULT_SPEAKER_NAME, voice=DEFAULT_VOICE)]


def find_labels(script: str) -> list[str]:
    """Unique speaker labels in order of first appearance."""
    seen: dict[str, None] = {}
    for label in SPEAKER_LABEL_RE.findall(script or ""):
        seen.setdefault(label, None)
    return list(seen)


def _next_id(speakers: Sequence[Speaker]) -> int:
    return max((s.id for s in speakers), default=0) + 1


def extract_speakers(script: str, existing: Sequence[Speaker] = ()) -> list[Speaker]:
    """Derive the speaker list from ``Name:`` labels at the start of script lines.

    Speakers already known by name keep their id and voice; new ones get
    ``TTS_VOICES[index % len(TTS_VOICES)]``. When the script has no labels, a
    single existing speaker is kept and anything else becomes the default
    single speaker.
    """
    labels = find_labels(script)
    if not labels:
        if len(existing) == 1:
            return list(existing)
        return default_speakers()

    by_name = {s.name: s for s in existing}
    next_id = _next_id(existing)
    speakers = []
    for index, name in enumerate(labels):
        known = by_name.get(name)
        if known:
            speakers.append(known)
            continue
        speakers.append(Speaker(id=next_id, name=name, voice=TTS_VOICES[index % len(TTS_VOICES)]))
        next_id += 1
    return speakers


def next_voice(speakers: Sequence[Speaker]) -> str:
    """Voice for the next speaker added by hand.

    Uses the preferred sequence while its slot is free, then the first unused
    catalog voice, then round-robin over the catalog.
    """
    index = len(speakers)
    used = {s.voice for s in speakers}

    if index < len(PREFERRED_VOICES) and PREFERRED_VOICES[index] not in used:
        return PREFERRED_VOICES[index]

    for voice in TTS_VOICES:
        if voice not in used:
            return voice
    return TTS_VOICES[index % len(TTS_VOICES)]


def add_speaker(speakers: Sequence[Speaker]) -> list[Speaker]:
    speaker = Speaker(
        id=_next_id(speakers),
        name=f"Speaker {len(speakers) + 1}",
        voice=next_voice(speakers),
    )
    return [*speakers, speaker]


def remove_speaker(speakers: Sequence[Speaker], speaker_id: int) -> list[Speaker]:
    remaining = [s for s in speakers if s.id != speaker_id]
    return remaining or default_speakers()


def update_speaker(
    speakers: Sequence[Speaker],
    speaker_id: int,
    name: Optional[str] = None,
    voice: Optional[str] = None,
) -> list[Speaker]:
    """Rename a speaker or change its voice.

    Raises:
        KeyError: If no speaker has ``speaker_id``
        ValueError: If the voice is not in the catalog or the name is blank
    """
    if voice is not None and voice not in TTS_VOICES:
        raise ValueError(f"Unknown voice: {voice}. Choose one of: {', '.join(TTS_VOICES)}")
    if name is not None and not name.strip():
        raise ValueError("Speaker name cannot be blank")
    if not any(s.id == speaker_id for s in speakers):
        raise KeyError(speaker_id)

    updated = []
    for s in speakers:
        if s.id == speaker_id:
            s = Speaker(
                id=s.id,
                name=name.strip() if name is not None else s.name,
                voice=voice if voice is not None else s.voice,
            )
        updated.append(s)
    return updated
