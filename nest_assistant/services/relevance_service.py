import re

MIN_RELEVANT_LENGTH = 3

# Digits, whitespace and non-word punctuation only
NON_ALPHABETIC_PATTERN = re.compile(r"^[\s\W\d]+$")

ACKNOWLEDGEMENT_PHRASES = frozenset({"ok", "yes", "no", "thanks", "thx"})


def is_acknowledgement_message(text: str) -> bool:
    return text.strip().casefold() in ACKNOWLEDGEMENT_PHRASES


def is_relevant(text: object) -> bool:
    """Decide whether a message deserves any processing at all.

    Rules are applied in order and the first match decides: blank text, text
    of two characters or fewer, text without alphabetic content, and bare
    acknowledgements are all dropped. Anything that is not a string is
    dropped too.
    """
    if not isinstance(text, str):
        return False

    stripped = text.strip()
    if not stripped:
        return False
    if len(stripped) < MIN_RELEVANT_LENGTH:
        return False
    if NON_ALPHABETIC_PATTERN.match(stripped):
        return False
    if is_acknowledgement_message(stripped):
        return False
    return True
