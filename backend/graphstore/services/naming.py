"""Table and column naming rules."""

from __future__ import annotations

import inflection


def snake(value: str) -> str:
    return inflection.underscore(value)


def table_name_from_type_name(type_name: str) -> str:
    """``BlogPost`` -> ``blog_posts``; only the last word is pluralized."""

    return snake(inflection.pluralize(type_name))
