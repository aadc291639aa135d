"""Capability check for converting a userstyle into an equivalent userscript."""

import re
from typing import Optional

from app.parsers.css_parser import CssParser

CONVERTIBLE_PREPROCESSORS = (None, "default")


def convertible(code: Optional[str]) -> bool:
    """
    Whether the style can be served as a ``.user.js``.

    Styles that need a preprocessor or user-configurable variables cannot be
    flattened, nor can regexp sections that the userscript engine can't
    evaluate.
    """
    if CssParser.get_meta_block(code) is None:
        return False
    meta = CssParser.parse_meta(code)
    preprocessor = (meta.get("preprocessor") or [None])[0]
    if preprocessor not in CONVERTIBLE_PREPROCESSORS:
        return False
    if "var" in meta or "advanced" in meta:
        return False
    for function, value in CssParser.document_rules(code):
        if function != "regexp":
            continue
        try:
            re.compile(value)
        except re.error:
            return False
    return True
