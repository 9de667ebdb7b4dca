"""Utilities for reporting deterministic upload progress percentages."""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from .workflows import UploadStep


STEP_LABELS: Dict[UploadStep, str] = {
    UploadStep.IDLE: "Preparing upload",
    UploadStep.UPLOADING_VIDEO: "Uploading video",
    UploadStep.UPLOADING_THUMBNAIL: "Uploading thumbnail",
    UploadStep.CREATING_RECORD: "Creating resource",
    UploadStep.COMPLETE: "Resource created",
}


def format_progress_message(
    message: str,
    completed_steps: Optional[float],
    total_steps: Optional[float],
) -> str:
    """Append a percentage indicator to ``message`` when possible.

    When the totals are unavailable (``None`` or zero) the message is returned
    unchanged. Percentages are clamped to the inclusive range ``[0,100]``.
    """

    if completed_steps is None or total_steps in {None, 0}:
        return message

    try:
        ratio = float(completed_steps) / float(total_steps)
    except (TypeError, ValueError):
        return message

    clamped = max(0.0, min(ratio, 1.0))
    percent = int(round(clamped * 100))
    return f"{message} ({percent}%)"


def planned_upload_steps(*, has_video: bool, has_thumbnail: bool) -> Sequence[UploadStep]:
    """Return the steps a submission will walk through, in order."""

    steps = []
    if has_video:
        steps.append(UploadStep.UPLOADING_VIDEO)
    if has_thumbnail:
        steps.append(UploadStep.UPLOADING_THUMBNAIL)
    steps.append(UploadStep.CREATING_RECORD)
    return tuple(steps)


def build_upload_progress_message(step: UploadStep, planned: Sequence[UploadStep]) -> str:
    """Describe *step* with the share of planned steps already finished."""

    label = f"====> {STEP_LABELS[step]}…"
    if step is UploadStep.COMPLETE:
        return format_progress_message(label, 1, 1)
    if step is UploadStep.IDLE or step not in planned:
        return format_progress_message(label, 0, len(planned))
    return format_progress_message(label, planned.index(step), len(planned))


__all__ = [
    "STEP_LABELS",
    "build_upload_progress_message",
    "format_progress_message",
    "planned_upload_steps",
]
