"""
Conditional Edge Functions

Routing logic for the report workflow.
"""

from typing import Any, Literal


def check_publish(state: dict[str, Any]) -> Literal["publish", "end"]:
    """
    Check whether the report should be published.

    render -> publish | END

    Args:
        state: Current workflow state

    Returns:
        Next node name
    """
    request = state.get("request")

    if request is not None and request.wants_publish:
        return "publish"
    return "end"
