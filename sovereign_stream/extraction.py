"""
Code extraction for single-shot operations (generate, refactor, fix, tests).
"""

import re

# Opening fence with optional info string, then the body up to the next fence.
_FENCED_BLOCK = re.compile(r"```[^\n`]*\n(.*?)```", re.DOTALL)


def extract_code(text: str) -> str:
    """
    Return the interior of the first fenced code block, trimmed.

    Falls back to the whole input, trimmed, when there is no complete
    fenced block.
    """
    match = _FENCED_BLOCK.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()
