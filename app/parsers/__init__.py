"""Meta block parsers for submitted userscripts and userstyles."""

from app.parsers.css_parser import CssParser
from app.parsers.js_parser import JsParser

PARSERS = {"js": JsParser, "css": CssParser}


def parser_for(language: str):
    """Return the parser class for a script language."""
    try:
        return PARSERS[language]
    except KeyError:
        raise ValueError(f"Unsupported script language: {language}") from None


__all__ = ["CssParser", "JsParser", "PARSERS", "parser_for"]
