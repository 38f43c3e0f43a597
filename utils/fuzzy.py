def fuzzy_options(query: str, items: list[str], limit: int = 8) -> list[str]:
    """
    Lightweight autocomplete: prefix matches first, then substring matches.
    A blank query returns the whole list so it can be scrolled.
    """
    q = (query or "").strip().lower()
    if not q:
        return list(items)
    starts = [x for x in items if x.lower().startswith(q)]
    contains = [x for x in items if not x.lower().startswith(q) and q in x.lower()]
    return (starts + contains)[:limit]
