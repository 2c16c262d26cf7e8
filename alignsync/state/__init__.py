from .cache import AlignmentCache, Projection
from .matching import match_tasks_to_assets, normalize_assets
from .models import AlignmentRecord, Asset, AudioSource, Output, StatusInfo, Target, Task
from .resolvers import (
    alignment_json_url,
    choose_playable_audio,
    collect_all_audio_urls,
    collect_task_outputs,
    describe_task,
    extract_task_array,
    find_alignment_output,
    get_task_audio_url,
    get_task_status_info,
    is_completed,
    parse_task,
    task_timestamp,
)

__all__ = [
    "AlignmentCache",
    "Projection",
    "match_tasks_to_assets",
    "normalize_assets",
    "AlignmentRecord",
    "Asset",
    "AudioSource",
    "Output",
    "StatusInfo",
    "Target",
    "Task",
    "alignment_json_url",
    "choose_playable_audio",
    "collect_all_audio_urls",
    "collect_task_outputs",
    "describe_task",
    "extract_task_array",
    "find_alignment_output",
    "get_task_audio_url",
    "get_task_status_info",
    "is_completed",
    "parse_task",
    "task_timestamp",
]
