from .settings import (
    FuzzyThresholds,
    PollConfig,
    get_allowed_media_types,
    get_api_base,
    get_asset_manifest_location,
    get_db_file,
    get_http_timeout,
    get_list_limit,
    get_seed_api_key,
    get_task_model,
)

__all__ = [
    "FuzzyThresholds",
    "PollConfig",
    "get_allowed_media_types",
    "get_api_base",
    "get_asset_manifest_location",
    "get_db_file",
    "get_http_timeout",
    "get_list_limit",
    "get_seed_api_key",
    "get_task_model",
]
