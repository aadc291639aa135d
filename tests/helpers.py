"""Code builders shared by the test modules."""


def userscript(*meta_lines: str, body: str = "console.log(1);") -> str:
    """Build userscript code from ``@key value`` meta lines."""
    lines = ["// ==UserScript=="]
    lines += [f"// {line}" for line in meta_lines]
    lines.append("// ==/UserScript==")
    lines.append(body)
    return "\n".join(lines) + "\n"


def userstyle(*meta_lines: str, body: str = "a { color: red; }") -> str:
    """Build userstyle code from ``@key value`` meta lines."""
    lines = ["/* ==UserStyle=="]
    lines += list(meta_lines)
    lines.append("==/UserStyle== */")
    lines.append(body)
    return "\n".join(lines) + "\n"
