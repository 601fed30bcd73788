"""Built-in sample scripts for trying the pipeline without writing one."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SamplePrompt:
    title: str
    script: str

    def to_dict(self) -> dict:
        return {"title": self.title, "script": self.script}


SAMPLE_PROMPTS: tuple[SamplePrompt, ...] = (
    SamplePrompt(
        title="Company Overview",
        script=(
            "A calm, confident narrator introduces Northwind Robotics. Open on wide aerial shots "
            "of a container port at sunrise, then move inside an automated warehouse where robot "
            "arms sort parcels. The head of engineering, Priya Raman, explains how the fleet cut "
            "delivery delays in half. Close on a dashboard glowing in a dark control room and the "
            "company logo fading in. Light ambient hum and soft whooshes between sections."
        ),
    ),
    SamplePrompt(
        title="Short Mystery Scene",
        script=(
            "Night in a rain-soaked harbor town. A tired detective, Elias Hart, walks past shuttered "
            "shops under buzzing neon. He stops at an empty pier where a single umbrella lies open "
            "on the boards. A lighthouse beam sweeps across the fog. Footsteps echo behind him, then "
            "stop. Slow pacing, long pauses, distant foghorns and steady rain."
        ),
    ),
    SamplePrompt(
        title="Product Launch",
        script=(
            "Introduce the Halo One wireless headphones in a bright minimalist apartment. Slow pans "
            "across brushed aluminium and soft fabric. A designer named Mina starts her morning with "
            "coffee and music, takes a call on a crowded train, then focuses in a quiet studio. "
            "Crisp, upbeat narration focused on comfort, battery life and sound."
        ),
    ),
    SamplePrompt(
        title="Two-Host Podcast",
        script=(
            "Host: Welcome back to Orbit Notes. Today we're talking about how cities will look when "
            "delivery drones are everywhere.\n"
            "Guest: It's closer than people think. The hard part isn't flying, it's sharing the sky.\n"
            "Host: So who decides where they can go?\n"
            "Guest: Right now, mostly nobody. That's what we need to fix."
        ),
    ),
    SamplePrompt(
        title="Nature Documentary",
        script=(
            "Dawn over a misty mountain valley. A river winds through pine forest as a heron takes "
            "flight. Follow a family of red foxes through the tall grass, then climb to a glacier "
            "where meltwater carves blue tunnels through the ice. End on the valley at dusk with "
            "stars appearing. Warm, unhurried narration with birdsong and running water."
        ),
    ),
    SamplePrompt(
        title="Travel Vlog",
        script=(
            "Speaker 1: Day three in Lisbon, and we're starting with pastries by the river.\n"
            "Speaker 2: Then the old tram up the hill, if we can squeeze on.\n"
            "Speaker 1: Sunset from the viewpoint, tiled rooftops everywhere.\n"
            "Speaker 2: And dinner in a tiny place with live guitar."
        ),
    ),
)


def list_samples() -> list[SamplePrompt]:
    return list(SAMPLE_PROMPTS)


def get_sample(key: str) -> Optional[SamplePrompt]:
    """Look up a sample by 1-based number or case-insensitive title."""
    key = key.strip()
    if key.isdigit():
        index = int(key) - 1
        return SAMPLE_PROMPTS[index] if 0 <= index < len(SAMPLE_PROMPTS) else None
    for sample in SAMPLE_PROMPTS:
        if sample.title.lower() == key.lower():
            return sample
    return None
