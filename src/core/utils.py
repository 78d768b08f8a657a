import re
from typing import Any, Optional

LANGUAGE_PREFIX_PATTERN = re.compile(r'^[a-z]{2}:', re.IGNORECASE)

def capitalize_first_letter(text: str) -> str:
    """'fRANCE' -> 'France'. Empty input stays empty."""
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()

def strip_language_prefix(tag: str) -> str:
    """Removes a taxonomy language prefix such as 'en:' from a tag."""
    return LANGUAGE_PREFIX_PATTERN.sub('', tag, count=1)

def non_empty_text(value: Any) -> Optional[str]:
    """Returns the value if it is a string with visible content, else None."""
    if isinstance(value, str) and value.strip():
        return value
    return None
