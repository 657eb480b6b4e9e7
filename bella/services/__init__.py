"""
Services for Bella Planner.

Services:
    - SessionStore: planning conversation rows
    - PlanStore: weekly plans (archive-then-insert, daily edits)
    - LLMClient: Groq chat completions with function calling
    - Profile formatter: profile document -> prompt text
    - EventDeduplicator: claim-once webhook event keys
    - RedisService: shared TTL-bounded state
"""

from .event_dedup import EventDeduplicator, get_event_deduplicator
from .llm_client import LLMClient, format_chat_history, get_llm_client, parse_function_call
from .plan_store import PlanStore, get_week_dates
from .profile_formatter import format_user_profile
from .redis_service import RedisService, get_redis_service
from .session_store import SessionChanges, SessionStore, new_message

__all__ = [
    # Persistence
    "SessionStore",
    "SessionChanges",
    "new_message",
    "PlanStore",
    "get_week_dates",
    # LLM
    "LLMClient",
    "get_llm_client",
    "format_chat_history",
    "parse_function_call",
    # Profile
    "format_user_profile",
    # Dedup
    "EventDeduplicator",
    "get_event_deduplicator",
    "RedisService",
    "get_redis_service",
]
