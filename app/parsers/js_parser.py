"""Parser for ``// ==UserScript==`` meta blocks."""

import re
from typing import List, Optional

from app.parsers.meta import Meta, add_meta_value, collect_applies_to

META_START = "// ==UserScript=="
META_END = "// ==/UserScript=="
_META_LINE = re.compile(r"^\s*//\s*@(\S+)(?:\s+(.*))?$")


class JsParser:
    """Reads the userscript meta block at the top of JavaScript code."""

    language = "js"

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
        return code[start : end + len(META_END)]

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
    def applies_to_patterns(cls, meta: Meta) -> List[str]:
        return meta.get("include", []) + meta.get("match", [])

    @classmethod
    def calculate_applies_to_names(cls, code: Optional[str]) -> List[dict]:
        patterns = cls.applies_to_patterns(cls.parse_meta(code))
        if not patterns:
            return []
        return collect_applies_to(patterns)
