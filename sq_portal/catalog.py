from __future__ import annotations

import re
import unicodedata
from typing import List, Optional, Sequence, Tuple

from sq_portal.config import CategoryCatalog

Choice = Tuple[str, str]


# Symbols spelled out in slugs; letters not listed fall back to accent folding.
_CHAR_MAP = {
    "&": "and",
    "$": "dollar",
    "%": "percent",
    "<": "less",
    ">": "greater",
    "|": "or",
    "¢": "cent",
    "£": "pound",
    "¥": "yen",
    "€": "euro",
    "©": "(c)",
    "®": "(r)",
    "™": "tm",
    "ß": "ss",
    "æ": "ae",
    "Æ": "AE",
    "ø": "o",
    "Ø": "O",
    "đ": "d",
    "Đ": "D",
    "ł": "l",
    "Ł": "L",
}

_DISALLOWED_RE = re.compile(r"""[^\w\s$*_+~.()'"!\-:@]+""", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+")


def _slug_char(ch: str) -> str:
    mapped = _CHAR_MAP.get(ch)
    if mapped is None:
        mapped = "".join(c for c in unicodedata.normalize("NFKD", ch) if not unicodedata.combining(c))
    # A literal dash counts as a word break, so "Web - DL" and "Web-DL" agree.
    if mapped == "-":
        return " "
    return _DISALLOWED_RE.sub("", mapped)


def slugify(value: str) -> str:
    """
    Lowercase, dash-separated form of a display label, matching the slugs the
    tracker backend stores for categories and sources.

    Symbols are spelled out (``&`` -> ``and``), accents are folded, characters
    outside ``\\w $*_+~.()'"!-:@`` are dropped and whitespace runs become one ``-``.
    Punctuation such as ``.`` is kept, so ``"DTS-HD 5.1"`` -> ``"dts-hd-5.1"``.
    """
    text = "".join(_slug_char(ch) for ch in unicodedata.normalize("NFC", value or ""))
    return _WHITESPACE_RE.sub("-", text.strip()).lower()


def _find_category_label(catalog: CategoryCatalog, category_slug: str) -> Optional[str]:
    wanted = (category_slug or "").strip().lower()
    if not wanted:
        return None
    for label in catalog:
        if slugify(label) == wanted:
            return label
    return None


def sources_for_category(catalog: CategoryCatalog, category_slug: str) -> Tuple[str, ...]:
    label = _find_category_label(catalog, category_slug)
    if label is None:
        return ()
    return tuple(catalog.get(label) or ())


class CategorySelector:
    """
    Two-level category -> source selection over a static catalog.

    ``selected_sources`` holds source labels in catalog order; ``selected_source``
    is the slug of the chosen source and always belongs to the selected category.
    """

    def __init__(self, catalog: CategoryCatalog) -> None:
        self.catalog = catalog
        self.selected_category = ""
        self.selected_sources: Tuple[str, ...] = ()
        self.selected_source = ""

    @property
    def enabled(self) -> bool:
        return bool(self.catalog)

    def initialize(self) -> str:
        if not self.catalog:
            self.selected_category = ""
            self.selected_sources = ()
            self.selected_source = ""
            return ""
        first_label = next(iter(self.catalog))
        self.on_category_change(slugify(first_label))
        return self.selected_category

    def on_category_change(self, new_category_slug: str) -> Tuple[str, ...]:
        self.selected_category = (new_category_slug or "").strip().lower()
        self.selected_sources = sources_for_category(self.catalog, self.selected_category)
        self.selected_source = slugify(self.selected_sources[0]) if self.selected_sources else ""
        return self.selected_sources

    def on_source_change(self, source_slug: str) -> str:
        candidate = (source_slug or "").strip().lower()
        allowed = {slugify(source) for source in self.selected_sources}
        if candidate not in allowed:
            raise ValueError(f"Source '{source_slug}' is not available for this category.")
        self.selected_source = candidate
        return self.selected_source

    def category_choices(self) -> List[Choice]:
        return [(label, slugify(label)) for label in self.catalog]

    def source_choices(self) -> List[Choice]:
        return [(source, slugify(source)) for source in self.selected_sources]

    def validate(self, category_slug: Optional[str], source_slug: Optional[str]) -> None:
        if not self.catalog:
            return
        category_label = _find_category_label(self.catalog, category_slug or "")
        if category_label is None:
            raise ValueError("Choose a category.")
        sources: Sequence[str] = self.catalog.get(category_label) or ()
        if not sources:
            if source_slug:
                raise ValueError(f"Category '{category_label}' does not accept a source.")
            return
        if (source_slug or "").strip().lower() not in {slugify(source) for source in sources}:
            raise ValueError(f"Choose a source that belongs to '{category_label}'.")
