"""Naming-convention filters registered on the Jinja2 environment.

All filters split their input into words the same way: on spaces,
underscores and hyphens, and on case boundaries (``myProject``,
``HTTPServer``).  Each filter then joins the words in its own style.
"""

from __future__ import annotations

import re

from jinja2.exceptions import FilterArgumentError

_LOWER_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s_\-]+")
_NON_IDENTIFIER = re.compile(r"\W")


def split_words(value: str) -> list[str]:
    """``"myAwesome-project"`` -> ``["my", "Awesome", "project"]``."""
    spaced = _ACRONYM_WORD.sub(r"\1 \2", _LOWER_UPPER.sub(r"\1 \2", value))
    return [word for word in _SEPARATORS.split(spaced) if word]


def _require_string(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise FilterArgumentError(f"{name}: value must be a string, got {type(value).__name__}")
    return value


def snake_case(value: str) -> str:
    """``MyAwesomeProject`` -> ``my_awesome_project``."""
    return "_".join(w.lower() for w in split_words(_require_string(value, "snake_case")))


def kebab_case(value: str) -> str:
    """``MyAwesomeProject`` -> ``my-awesome-project``."""
    return "-".join(w.lower() for w in split_words(_require_string(value, "kebab_case")))


def pascal_case(value: str) -> str:
    """``my-awesome_project`` -> ``MyAwesomeProject``.

    A run of capitals is one word and is capitalised like any other, so
    ``HTTPServer`` becomes ``HttpServer``.
    """
    return "".join(w.capitalize() for w in split_words(_require_string(value, "pascal_case")))


def camel_case(value: str) -> str:
    """``my-awesome_project`` -> ``myAwesomeProject``."""
    pascal = pascal_case(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


def module_name(value: str) -> str:
    """snake_case that is always a valid identifier.

    ``3d-engine`` -> ``_3d_engine``; ``my.app`` -> ``my_app``.  Unicode letters
    and digits are kept.
    """
    name = _NON_IDENTIFIER.sub("_", snake_case(_require_string(value, "module_name")))
    if name[:1].isdigit():
        name = f"_{name}"
    return name


FILTERS = {
    "snake_case": snake_case,
    "kebab_case": kebab_case,
    "pascal_case": pascal_case,
    "camel_case": camel_case,
    "module_name": module_name,
}
