from media_audit.core.document import create_element


def add_media(parent, tag, src=None, sources=(), **live):
    """Append a media element with optional <source> children and live fields."""
    attrs = {"src": src} if src is not None else {}
    element = create_element(tag, attrs)
    for url, mime in sources:
        source_attrs = {"src": url}
        if mime:
            source_attrs["type"] = mime
        element.append_child(create_element("source", source_attrs))
    for name, value in live.items():
        setattr(element, name, value)
    parent.append_child(element)
    return element
