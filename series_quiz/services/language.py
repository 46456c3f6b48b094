def normalize_language_code(code: str | None) -> str:
    """
    Lower-case and trim a language code ("DE-DE " -> "de-de").
    Raises ValueError on empty input.
    """
    if code is None or not str(code).strip():
        raise ValueError("Language code is required")
    return str(code).strip().lower()
