# Identifier shape helpers shared by the naming and route rules.

from __future__ import annotations

import re

CAMEL_CASE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
PASCAL_CASE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
SNAKE_CASE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
KEBAB_SEGMENT = re.compile(r"^[a-z0-9]+([-.][a-z0-9]+)*$")
ROUTE_PARAMETER = re.compile(r"^\{[a-zA-Z_][a-zA-Z0-9_]*\??\}$")
_WORDS = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z0-9]+")

# Nouns that read the same in singular and plural.
UNCOUNTABLE = frozenset(
    {
        "data",
        "metadata",
        "media",
        "information",
        "equipment",
        "feedback",
        "news",
        "series",
        "species",
        "staff",
        "software",
        "money",
        "audio",
        "sheep",
        "fish",
    }
)
IRREGULAR_PLURALS = frozenset(
    {"people", "children", "men", "women", "feet", "teeth", "mice", "geese", "criteria", "phenomena"}
)
# Singular nouns that still end in "s".
SINGULAR_S_ENDINGS = ("ss", "us", "is", "ics")


def is_camel_case(name: str) -> bool:
    return bool(CAMEL_CASE.match(name))


def is_pascal_case(name: str) -> bool:
    return bool(PASCAL_CASE.match(name))


def is_snake_case(name: str) -> bool:
    return bool(SNAKE_CASE.match(name))


def split_words(name: str) -> list[str]:
    """Split camelCase, PascalCase, snake_case and kebab-case into lowercase words.

    >>> split_words("activeUserPosts")
    ['active', 'user', 'posts']
    >>> split_words("HTTPClient")
    ['http', 'client']
    """
    words: list[str] = []
    for chunk in re.split(r"[_\-.\s]+", name):
        words.extend(word.lower() for word in _WORDS.findall(chunk))
    return words


def last_word(name: str) -> str:
    words = split_words(name)
    return words[-1] if words else name.lower()


def is_uncountable(name: str) -> bool:
    return last_word(name) in UNCOUNTABLE


def looks_plural(name: str) -> bool:
    """Heuristic: does the last word of an identifier read as an English plural?

    >>> looks_plural("Users"), looks_plural("Address"), looks_plural("children")
    (True, False, True)
    """
    word = last_word(name)
    if word in UNCOUNTABLE:
        return False
    if word in IRREGULAR_PLURALS:
        return True
    if len(word) < 3 or word.endswith(SINGULAR_S_ENDINGS):
        return False
    return word.endswith("s")


def to_camel_case(name: str) -> str:
    words = split_words(name)
    if not words:
        return name
    return words[0] + "".join(word.capitalize() for word in words[1:])
