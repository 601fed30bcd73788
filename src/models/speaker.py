"""Speaker model for multi-voice narration."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Speaker:
    """A labelled speaker in the narration script and its assigned voice."""

    id: int
    name: str
    voice: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "voice": self.voice}
