"""Parser for ``/* ==UserStyle== */`` meta blocks and ``@-moz-document`` rules."""

import re
from typing import List, Optional, Tuple

from app.parsers.meta import Meta, add_meta_value, applies_to_entry, collect_applies_to

META_START = "==UserStyle=="
META_END = "==/UserStyle=="
_META_LINE = re.compile(r"^\s*@(\S+)(?:\s+(.*))?$")
_DOCUMENT_RULE = re.compile(r"@-moz-document\s+([^{]+)\{")
_DOCUMENT_FUNCTION = re.compile(
    r"(url-prefix|url|domain|regexp)\(\s*(?:\"([^\"]*)\"|'([^']*)'|([^)]*))\s*\)",
    re.IGNORECASE,
)


class CssParser:
    """Reads userstyle metadata and the site rules of its sections."""

    language = "css"

    @classmethod
    def get_meta_block(cls, code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        start = code.find(META_START)
        if start == -1:
            return None
        end = code.find(META_END, start)
        if end == -1:
            return None
        return code[start + len(META_START) : end]

    @classmethod
    def parse_meta(cls, code: Optional[str]) -> Meta:
        meta: Meta = {}
        block = cls.get_meta_block(code)
        if block is None:
            return meta
        for line in block.splitlines():
            match = _META_LINE.match(line)
            if match:
                add_meta_value(meta, match.group(1), match.group(2))
        return meta

    @classmethod
    def document_rules(cls, code: Optional[str]) -> List[Tuple[str, str]]:
        """All ``(function, value)`` pairs from ``@-moz-document`` preludes."""
        rules = []
        for prelude in _DOCUMENT_RULE.findall(code or ""):
            for match in _DOCUMENT_FUNCTION.finditer(prelude):
                value = next(v for v in match.groups()[1:] if v is not None)
                rules.append((match.group(1).lower(), value.strip()))
        return rules

    @classmethod
    def calculate_applies_to_names(cls, code: Optional[str]) -> List[dict]:
        rules = cls.document_rules(code)
        if not rules:
            return []
        patterns = []
        for function, value in rules:
            if function == "domain":
                patterns.append(f"*://{value}/*" if value else "*")
            elif function == "regexp":
                if applies_to_entry(value) is None or value in (".*", "^.*$"):
                    return []
                patterns.append(value)
            else:
                patterns.append(value or "*")
        return collect_applies_to(patterns)
