"""
Telegram MarkdownV2 formatting utilities.
"""

import re

# Characters that must be escaped in MarkdownV2 (outside code blocks)
_ESCAPE_CHARS = r'_*[]()~`>#+-=|{}.!\\'


def escape_markdown_v2(text: str) -> str:
    """
    Escape special characters for Telegram MarkdownV2.

    Required characters to escape: \\ _ * [ ] ( ) ~ ` > # + - = | { } . !
    """
    return re.sub(f'([{re.escape(_ESCAPE_CHARS)}])', r'\\\1', text)


def escape_link_url(url: str) -> str:
    """Inside (...) of an inline link only ) and \\ need escaping."""
    return url.replace("\\", "\\\\").replace(")", "\\)")


def markdown_link(text: str, url: str) -> str:
    """Build a MarkdownV2 inline link; falls back to plain escaped text without a URL."""
    if not url:
        return escape_markdown_v2(text)
    return f"[{escape_markdown_v2(text)}]({escape_link_url(url)})"
