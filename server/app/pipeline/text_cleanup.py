# ─────────────────────────────────────────────────────────────────────────────
# Text Cleanup — normalize model output before it reaches the caller
# ─────────────────────────────────────────────────────────────────────────────

_QUOTES = "\"'"


def strip_wrapping_quotes(text: str) -> str:
    """Drop one leading and one trailing quote character, then whitespace.

    The model sometimes wraps the whole description in quotes. The two ends
    are checked independently, so unbalanced quotes go too: a text ending in
    a possessive apostrophe ("homeowners'") loses it.
    """
    text = text.strip()
    if text and text[0] in _QUOTES:
        text = text[1:]
    if text and text[-1] in _QUOTES:
        text = text[:-1]
    return text.strip()


def within_length_band(text: str, min_chars: int, max_chars: int) -> bool:
    return min_chars <= len(text) <= max_chars
