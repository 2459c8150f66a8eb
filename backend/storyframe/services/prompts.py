from __future__ import annotations
"""Prompt composition for pose and scene generation."""

from collections.abc import Iterable

CONTINUITY_CLAUSE = "Render cinematic framing with consistent styling and lighting continuity."
POSE_CLAUSE = "Keep silhouette readable and maintain outfit accuracy."
CONTINUATION_CLAUSE = (
    "Continue the scene from the previous frames: keep character identity, "
    "wardrobe, environment and camera language consistent."
)


def build_pose_prompt(
    character_name: str,
    label: str,
    description: str,
    scene_use_case: str | None = None,
) -> str:
    lines = [
        f"Character: {character_name}.",
        f"Pose: {label}. {description}".strip(),
    ]
    if scene_use_case:
        lines.append(f"Scene use case: {scene_use_case}.")
    lines.append(POSE_CLAUSE)
    return " \n".join(lines)


def build_scene_prompt(
    character_name: str,
    prompt: str,
    pose_label: str | None = None,
    pose_description: str | None = None,
    continuation: bool = False,
) -> str:
    lines = [f"Scene setup for {character_name}."]
    if pose_label:
        detail = f" ({pose_description})" if pose_description else ""
        lines.append(f"Use pose: {pose_label}{detail}.")
    lines.append(prompt.strip())
    if continuation:
        lines.append(CONTINUATION_CLAUSE)
    lines.append(CONTINUITY_CLAUSE)
    return " \n".join(lines)


def describe_references(references: Iterable) -> list[str]:
    """One prompt line per reference image, in the order they are sent."""
    lines = []
    for index, ref in enumerate(references, start=1):
        text = ref.description or ref.role
        lines.append(f"Reference image {index} ({ref.role}): {text}")
    return lines
