"""Tools package: provider clients, text utilities, context building, JSON parsing."""

from tools.agent_sdk_client import AgentSDKClient, normalize_model_id
from tools.image_client import ImageClient
from tools.json_utils import parse_json_response, parse_json_list
from tools.context_builder import ContextLimits, build_context
from tools.text_utils import (
    sanitize_text,
    sanitize_chapter,
    count_words,
    estimate_reading_time,
    estimate_page_count,
    get_chapter_ending,
    get_chapter_opening,
    split_into_paragraphs,
    truncate,
)

__all__ = [
    "AgentSDKClient",
    "normalize_model_id",
    "ImageClient",
    "parse_json_response",
    "parse_json_list",
    "ContextLimits",
    "build_context",
    "sanitize_text",
    "sanitize_chapter",
    "count_words",
    "estimate_reading_time",
    "estimate_page_count",
    "get_chapter_ending",
    "get_chapter_opening",
    "split_into_paragraphs",
    "truncate",
]
