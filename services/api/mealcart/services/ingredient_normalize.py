import re

# Preparation/state words that never change what you buy
PREPARATION_TERMS = (
    "minced", "diced", "chopped", "sliced", "crushed", "julienned",
    "grated", "shredded", "peeled", "cubed", "halved", "quartered",
    "whole", "trimmed", "boneless", "skinless", "fresh", "frozen",
    "canned", "dried", "cooked", "raw", "uncooked",
)

_PUNCTUATION_RE = re.compile(r"[(){}\[\],.]")
_WHITESPACE_RE = re.compile(r"\s+")
# Standalone word only: "sun-dried" and "strawberry" stay intact
_TERM_RES = [re.compile(rf"(?<!\S){term}(?!\S)") for term in PREPARATION_TERMS]


def _collapse(s: str) -> str:
    return _WHITESPACE_RE.sub(" ", s).strip()


def _normalize_once(name: str) -> str:
    # 1. Lowercase + punctuation that varies between generated recipes
    s = _collapse(_PUNCTUATION_RE.sub(" ", name.lower().strip()))

    # 2. Preparation terms, anywhere in the name
    for term_re in _TERM_RES:
        s = term_re.sub(" ", s)

    # 3. Collapse again after removal
    s = _collapse(s)

    # 4. Naive singularization of the whole name: carrots -> carrot, glass stays
    if len(s) > 3 and s.endswith("s") and not s.endswith("ss"):
        s = s[:-1].rstrip()

    return s


def normalize_ingredient_name(name: str) -> str:
    """
    Normalize an ingredient name to the key used for grocery aggregation
    and unit profile lookup.

    "Garlic, minced", "minced garlic" and "garlic" share a key, as do
    "carrots" and "carrot". Irregular plurals are not handled.

    The pass is repeated until stable, so the result is always a fixed
    point (e.g. "pea raws" -> "pea raw" -> "pea").
    """
    if not name:
        return ""

    s = _normalize_once(name)
    while True:
        again = _normalize_once(s)
        if again == s:
            return s
        s = again
