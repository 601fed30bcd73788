"""Scene decomposition prompt templates.

Contains prompts for:
- SCENE_PROMPT_GENERATOR_V1: Break a narration script into an ordered list of image prompts
- CINEMATIC_STYLE_SUFFIX: Fixed style block appended to every AI image prompt
"""

# Scene Prompt Generator v1 (system instruction, script is sent as contents)
SCENE_PROMPT_GENERATOR_V1 = """You are a creative director preparing shot lists for a narrated video.

TASK
Read the narration script and split it into a sequence of distinct scenes. Start a new scene
whenever the script moves to a new location, a new key moment, or a clear change in mood.
For each scene write one short, purely visual prompt for an image generation model.

RULES
1. Describe only what a camera would see: setting, subjects, action, mood, lighting.
2. Aim for realistic, high quality, cinematic frames.
3. Keep the scenes in the same order as the script.
4. Return ONE JSON array of strings, one prompt per scene, and nothing else.
5. No markdown, no keys, no commentary around the array.

EXAMPLE SCRIPT
"The old harbor wakes before sunrise. Fishermen haul their nets while gulls circle overhead.
By noon the market is a maze of voices and color."

EXAMPLE OUTPUT
[
  "Wide shot of a quiet stone harbor in blue pre-dawn light, small wooden boats rocking on calm water, lanterns still lit on the pier.",
  "Medium shot of weathered fishermen hauling a heavy net onto a deck, gulls circling against a pale orange sky, spray catching the first sunlight.",
  "Busy open-air fish market at midday, crowded stalls with colorful awnings, vendors calling out, ice glittering under crates of fresh catch."
]"""

# Appended to every prompt in AI image mode so all scenes share one look
CINEMATIC_STYLE_SUFFIX = """

STYLE FOR THIS IMAGE
- Format: ultra-wide cinematic frame, 16:9 landscape
- Style: realistic, high dynamic range, documentary look
- Color: slightly desaturated, cool palette with subtle warm highlights
- Lighting: dramatic but grounded in real-world environments
- No on-screen text, titles, or UI overlays
"""


def apply_style(prompt: str) -> str:
    """Return the prompt with the shared cinematic style block appended."""
    return f"{prompt.rstrip()}{CINEMATIC_STYLE_SUFFIX}"
