from __future__ import annotations
import html
from enum import IntEnum
from typing import Any, Dict, List

VOID_ELEMENTS = frozenset(
    "area base br col embed hr img input link meta param source track wbr".split()
)
RAW_TEXT_ELEMENTS = frozenset(("script", "style"))


class NodeType(IntEnum):
    """rrweb serialized node kinds."""

    DOCUMENT = 0
    DOCUMENT_TYPE = 1
    ELEMENT = 2
    TEXT = 3
    CDATA = 4
    COMMENT = 5


def _attributes(node: Dict[str, Any]) -> List[str]:
    parts: List[str] = []
    for name, value in (node.get("attributes") or {}).items():
        # rrweb bookkeeping (rr_width, rr_scrollLeft, _cssText...) is not markup
        if name.startswith("rr_") or name == "_cssText":
            continue
        if value is False or value is None:
            continue
        if value is True or value == "":
            parts.append(f" {name}")
        else:
            parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
    return parts


def _element(node: Dict[str, Any], out: List[str]) -> None:
    tag = str(node.get("tagName") or "div").lower()
    attributes = node.get("attributes") or {}
    css_text = attributes.get("_cssText")
    if tag == "link" and css_text is not None:
        # inlined stylesheet
        out.append(f"<style>{css_text}</style>")
        return
    out.append(f"<{tag}{''.join(_attributes(node))}>")
    if tag in VOID_ELEMENTS:
        return
    if tag == "style" and css_text is not None:
        out.append(str(css_text))
    else:
        for child in node.get("childNodes") or []:
            _serialize(child, out, raw_text=tag in RAW_TEXT_ELEMENTS)
    out.append(f"</{tag}>")


def _serialize(node: Dict[str, Any], out: List[str], raw_text: bool = False) -> None:
    kind = node.get("type")
    if kind == NodeType.DOCUMENT:
        for child in node.get("childNodes") or []:
            _serialize(child, out)
    elif kind == NodeType.DOCUMENT_TYPE:
        out.append(f"<!DOCTYPE {node.get('name') or 'html'}>")
    elif kind == NodeType.ELEMENT:
        _element(node, out)
    elif kind == NodeType.TEXT:
        text = str(node.get("textContent") or "")
        out.append(text if raw_text or node.get("isStyle") else html.escape(text, quote=False))
    elif kind == NodeType.CDATA:
        out.append(f"<![CDATA[{node.get('textContent') or ''}]]>")
    elif kind == NodeType.COMMENT:
        out.append(f"<!--{node.get('textContent') or ''}-->")


def serialize_node(node: Dict[str, Any]) -> str:
    """HTML markup for an rrweb serialized node tree (full snapshot ``data.node``)."""
    out: List[str] = []
    _serialize(node, out)
    return "".join(out)


def snapshot_document(node: Dict[str, Any]) -> str:
    """Standalone HTML document for a snapshot tree."""
    markup = serialize_node(node)
    if node.get("type") == NodeType.DOCUMENT:
        if not markup.lstrip().lower().startswith("<!doctype"):
            markup = "<!DOCTYPE html>\n" + markup
        return markup
    return (
        "<!DOCTYPE html>\n<html>\n<head>\n  <meta charset=\"utf-8\">\n"
        "  <title>DOM Snapshot</title>\n</head>\n<body>\n"
        f"{markup}\n</body>\n</html>\n"
    )
