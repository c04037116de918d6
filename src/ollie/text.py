def remove_tag(text: str, tag: str) -> str | None:
    """Remove every ``<tag ...>...</tag>`` block from *text*.

    Returns ``None`` when nothing was removed.  An opening tag without a
    closing tag stops processing and leaves the rest of the text as is.
    """
    opening = f"<{tag}"
    closing = f"</{tag}>"
    result = text
    removed = False
    while True:
        start = result.find(opening)
        if start == -1:
            break
        tag_end = result.find(">", start)
        if tag_end == -1:
            break
        end = result.find(closing, tag_end + 1)
        if end == -1:
            break
        result = result[:start] + result[end + len(closing):]
        removed = True
    return result if removed else None


def remove_thinking(text: str) -> str:
    """Strip ``<think>`` blocks emitted by reasoning models."""
    cleaned = remove_tag(text, "think")
    return text if cleaned is None else cleaned
