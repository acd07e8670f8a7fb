"""Markdown to block conversion and block rendering (terminal text or Markdown)."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .properties import plain_text, rich_text

BLOCK_TYPE_ALIASES = {
    "h1": "heading_1",
    "heading1": "heading_1",
    "h2": "heading_2",
    "heading2": "heading_2",
    "h3": "heading_3",
    "heading3": "heading_3",
    "bullet": "bulleted_list_item",
    "numbered": "numbered_list_item",
    "todo": "to_do",
    "p": "paragraph",
}

HEADING_PREFIXES = (
    ("### ", "heading_3"),
    ("## ", "heading_2"),
    ("# ", "heading_1"),
)

DIVIDER_LINES = frozenset({"---", "***", "___"})

CONTAINER_TYPES = frozenset({"column_list", "column", "synced_block"})

FENCE = "```"
DEFAULT_LANGUAGE = "plain text"


@dataclass
class Block:
    """One block with its type-specific payload and owned child list."""

    type: str
    payload: dict[str, Any] = field(default_factory=dict)
    id: str = ""
    has_children: bool = False
    children: list[Block] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def text(self) -> str:
        return plain_text(self.payload.get("rich_text"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Block:
        block_type = data.get("type")
        if not isinstance(block_type, str):
            block_type = ""
        payload = data.get(block_type)
        return cls(
            type=block_type,
            payload=payload if isinstance(payload, dict) else {},
            id=data.get("id") or "",
            has_children=data.get("has_children") is True,
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Request form of the block, as accepted by the append endpoint."""
        return {"object": "block", "type": self.type, self.type: self.payload}

    def to_tree(self) -> dict[str, Any]:
        """The block as received, with fetched children nested under ``children``."""
        tree = dict(self.raw) if self.raw else self.to_dict()
        if self.children:
            tree["children"] = [child.to_tree() for child in self.children]
        return tree


def block_type_alias(name: str) -> str:
    """Map a CLI shorthand (``h1``, ``bullet``, ``todo`` ...) to a block type."""
    return BLOCK_TYPE_ALIASES.get(name, name)


def text_block(block_type: str, text: str, language: str | None = None) -> Block:
    """Build a block carrying ``text`` as a single rich-text run."""
    if block_type == "divider":
        return Block("divider", {})
    payload: dict[str, Any] = {"rich_text": rich_text(text.strip())}
    if block_type == "code":
        payload["language"] = language or DEFAULT_LANGUAGE
    elif block_type == "to_do":
        payload["checked"] = False
    return Block(block_type, payload)


def _todo(text: str, checked: bool) -> Block:
    block = text_block("to_do", text)
    block.payload["checked"] = checked
    return block


def _is_numbered(line: str) -> bool:
    return len(line) > 2 and line[0] in "0123456789" and ". " in line[:5]


def parse_markdown(content: str) -> list[Block]:
    """Parse Markdown text line by line into blocks."""
    blocks: list[Block] = []
    lines = content.split("\n")
    i = 0
    while i < len(lines):
        line = lines[i]

        if line.startswith(FENCE):
            language = line[len(FENCE):].strip() or DEFAULT_LANGUAGE
            code_lines = []
            i += 1
            while i < len(lines) and not lines[i].startswith(FENCE):
                code_lines.append(lines[i])
                i += 1
            i += 1  # closing fence
            blocks.append(Block("code", {"rich_text": rich_text("\n".join(code_lines)), "language": language}))
            continue

        i += 1
        if not line.strip():
            continue

        heading = next((kind for prefix, kind in HEADING_PREFIXES if line.startswith(prefix)), None)
        if heading is not None:
            blocks.append(text_block(heading, line.split(" ", 1)[1]))
        elif line.startswith("- [ ] "):
            blocks.append(_todo(line[6:], False))
        elif line.startswith(("- [x] ", "- [X] ")):
            blocks.append(_todo(line[6:], True))
        elif line.startswith(("- ", "* ")):
            blocks.append(text_block("bulleted_list_item", line[2:]))
        elif _is_numbered(line):
            blocks.append(text_block("numbered_list_item", line[line.index(". ") + 2:]))
        elif line.startswith("> "):
            blocks.append(text_block("quote", line[2:]))
        elif line in DIVIDER_LINES:
            blocks.append(Block("divider", {}))
        else:
            blocks.append(text_block("paragraph", line))

    return blocks


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _file_url(payload: Mapping[str, Any]) -> str:
    for key in ("file", "external"):
        source = payload.get(key)
        if isinstance(source, dict):
            return source.get("url") or ""
    return ""


def _render_terminal(block: Block, prefix: str) -> str:
    kind, text, payload = block.type, block.text, block.payload

    if kind == "paragraph":
        return f"{prefix}{text}\n" if text else "\n"
    if kind.startswith("heading_") and kind[-1].isdigit():
        return f"{prefix}{'#' * int(kind[-1])} {text}\n"
    if kind == "bulleted_list_item":
        return f"{prefix}• {text}\n"
    if kind == "numbered_list_item":
        return f"{prefix}  {text}\n"
    if kind == "to_do":
        mark = "☑" if payload.get("checked") is True else "☐"
        return f"{prefix}{mark} {text}\n"
    if kind == "toggle":
        return f"{prefix}▸ {text}\n"
    if kind == "code":
        language = payload.get("language") or ""
        return f"{prefix}{FENCE}{language}\n{prefix}{text}\n{prefix}{FENCE}\n"
    if kind == "quote":
        return f"{prefix}│ {text}\n"
    if kind == "callout":
        return f"{prefix}💡 {text}\n"
    if kind == "divider":
        return f"{prefix}───\n"
    if kind == "bookmark":
        return f"{prefix}🔗 {payload.get('url') or ''}\n"
    if kind == "image":
        return f"{prefix}🖼  [image]\n"
    return f"{prefix}{text}\n" if text else ""


def _render_markdown(block: Block, prefix: str) -> str:
    kind, text, payload = block.type, block.text, block.payload

    if kind == "paragraph":
        return f"{prefix}{text}\n\n" if text else "\n"
    if kind.startswith("heading_") and kind[-1].isdigit():
        return f"{prefix}{'#' * int(kind[-1])} {text}\n\n"
    if kind in ("bulleted_list_item", "toggle"):
        return f"{prefix}- {text}\n"
    if kind == "numbered_list_item":
        return f"{prefix}1. {text}\n"
    if kind == "to_do":
        mark = "x" if payload.get("checked") is True else " "
        return f"{prefix}- [{mark}] {text}\n"
    if kind == "code":
        language = payload.get("language") or ""
        if language == DEFAULT_LANGUAGE:
            language = ""
        return f"{prefix}{FENCE}{language}\n{text}\n{prefix}{FENCE}\n\n"
    if kind == "quote":
        return f"{prefix}> {text}\n\n"
    if kind == "callout":
        icon = payload.get("icon")
        emoji = icon.get("emoji") if isinstance(icon, dict) else None
        return f"{prefix}> {emoji or '💡'} {text}\n\n"
    if kind == "divider":
        return f"{prefix}---\n\n"
    if kind == "bookmark":
        url = payload.get("url") or ""
        caption = plain_text(payload.get("caption")[:1]) if isinstance(payload.get("caption"), list) else ""
        return f"{prefix}[{caption or url}]({url})\n\n"
    if kind == "image":
        url = _file_url(payload)
        return f"{prefix}![image]({url})\n\n" if url else ""
    if kind == "embed":
        return f"{prefix}[embed]({payload.get('url') or ''})\n\n"
    if kind == "video":
        url = _file_url(payload)
        return f"{prefix}[video]({url})\n\n" if url else ""
    if kind == "table_of_contents":
        return f"{prefix}[TOC]\n\n"
    if kind == "equation":
        expression = payload.get("expression") or ""
        return f"{prefix}$$\n{prefix}{expression}\n{prefix}$$\n\n"
    if kind in CONTAINER_TYPES:
        return ""
    return f"{prefix}{text}\n\n" if text else ""


def render_block(block: Block, indent: int = 0, markdown: bool = False) -> str:
    """Render a block and its children, two spaces of indent per level."""
    prefix = "  " * indent
    render = _render_markdown if markdown else _render_terminal
    parts = [render(block, prefix)]
    parts.extend(render_block(child, indent + 1, markdown) for child in block.children)
    return "".join(parts)


def render_blocks(blocks: Iterable[Block], markdown: bool = False) -> str:
    return "".join(render_block(block, 0, markdown) for block in blocks)
