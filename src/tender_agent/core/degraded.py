"""Canned responses for degraded mode.

Used when the LLM is unavailable so the app can still acknowledge the
user's actions in Tender's voice: warm, brief and helpful.
"""

import re
from typing import Dict, Union

DEGRADED_RESPONSES: Dict[str, str] = {
    # Signal acknowledgments
    "reflection_recorded": (
        "Recorded. I'll dig into this when I'm back online. "
        "Would you like to add anything else right now?"
    ),
    "skip_acknowledged": "Got it. I've noted that you skipped this one.",
    "completion_acknowledged": "Nice work! I've marked that complete.",
    "deferral_acknowledged": "No problem. I've pushed this one back for now.",
    # Task actions
    "task_created": "Added to your list.",
    "task_updated": "Updated.",
    "task_deleted": "Removed from your list.",
    # Blockers
    "blocker_added": "Noted. I've marked this as blocked.",
    "blocker_cleared": "Great, the blocker is cleared.",
    # Status
    "offline_notice": (
        "I'm currently offline, but I can still help you track tasks and record your thoughts."
    ),
    "reconnecting": "Trying to reconnect...",
    "back_online": "I'm back online! Let me catch up on what I missed.",
    # Prompts
    "prompt_reflection": "How are you feeling about this task?",
    "prompt_blocker": "What's making this one hard to start?",
    "prompt_follow_up": "Anything else you'd like to add?",
    # Fallbacks
    "generic_acknowledgment": "Got it.",
    "generic_error": (
        "Something went wrong. Your data is safe, but I couldn't complete that action."
    ),
}

DEGRADED_RESPONSE_TEMPLATES: Dict[str, str] = {
    "task_completed_with_name": "Nice work on '{task_name}'!",
    "task_skipped_with_name": "Skipped '{task_name}'. We can come back to it later.",
    "deferral_count": "This is the {count} time you've deferred this one.",
    "next_suggestion": "How about '{task_name}' next?",
}


def get_degraded_response(key: str) -> str:
    """Return the canned response for *key*, or the generic acknowledgment."""
    return DEGRADED_RESPONSES.get(key, DEGRADED_RESPONSES["generic_acknowledgment"])


def format_response(template: str, **values: Union[str, int]) -> str:
    """Fill ``{name}`` placeholders in a template.

    Args:
        template: A key of DEGRADED_RESPONSE_TEMPLATES or a raw template string.
        **values: Placeholder values; every occurrence is replaced and
            placeholders without a value are left as-is.

    Example:
        >>> format_response("task_completed_with_name", task_name="Email grandma")
        "Nice work on 'Email grandma'!"
    """
    text = DEGRADED_RESPONSE_TEMPLATES.get(template, template)
    for name, value in values.items():
        text = re.sub(r"\{" + re.escape(name) + r"\}", lambda _: str(value), text)
    return text
