def check_not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("Field must not be empty")
    return value.strip()
