"""Transcription prompt templates."""

NARRATION_TRANSCRIBER_V1 = (
    "Transcribe this audio recording accurately. Label each distinct speaker at the start "
    "of their lines (for example 'Speaker 1:', 'Speaker 2:'). Include non-verbal sounds and "
    "environmental sound effects as tags in square brackets, such as [soft laugh], "
    "[door closes] or [car horn]. If only one person speaks, do not add speaker labels."
)
