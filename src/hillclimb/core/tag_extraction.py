"""
Tag Extraction Utilities - Core Module

Simple, reusable helpers for pulling ``<tag>...</tag>`` sections out of raw
LLM output. LLMs are sloppy with tags (attributes, odd casing, stray
spaces, code fences, missing close tags), so extraction is lenient.
"""

import html
import re

from .abstractions import ISectionExtractor

FENCES = ("```", "~~~")
BOUNDARY_TAGS = ("<comments>", "<thinking>")


def _unwrap_code_fence(text: str, tag: str) -> str:
    """
    Rewrite a response fenced as ```answer ... ``` into <answer>...</answer>.

    Args:
        text: Raw text
        tag: Lowercase tag name

    Returns:
        Text with the fence replaced, or unchanged
    """
    stripped = text.strip()
    for fence in FENCES:
        opener = fence + tag
        if stripped.lower().startswith(opener) and stripped.endswith(fence):
            start = stripped.find("\n") + 1
            end = stripped.rfind("\n")
            if start > 0 and end >= start:
                return f"<{tag}>\n{stripped[start:end]}\n</{tag}>"
    return text


def normalize_tags(text: str, tag: str) -> str:
    """
    Canonicalize every variant of ``tag`` to ``<tag>`` / ``</tag>``.

    Handles whitespace inside the brackets, attributes and casing:
    ``< Answer id="1" >`` -> ``<answer>``.
    """
    pattern = re.compile(r"<\s*(/?)\s*" + re.escape(tag) + r"\b[^>]*>", re.IGNORECASE)
    text = pattern.sub(lambda m: f"<{m.group(1)}{tag}>", text)

    if tag == "answer":
        # Common misspellings: <answr>, <answers>, </anser>
        text = re.sub(r"<answers?>|<answe?r?>", "<answer>", text, flags=re.IGNORECASE)
        text = re.sub(r"</answers?>|</answe?r?>", "</answer>", text, flags=re.IGNORECASE)
    return text


def extract_text_between_tags(text: str, tag: str, strict: bool = False) -> str:
    """
    Extract the content of the first ``<tag>...</tag>`` section.

    Falls back in order:
    1. Unterminated open tag (non-strict): content up to <comments>/<thinking>
    2. No tags at all (non-strict): the whole text

    Args:
        text: Raw LLM output
        tag: Section name
        strict: Require a closed pair

    Returns:
        Trimmed section content, or "" if not found
    """
    if not text:
        return ""

    tag = tag.lower()
    open_tag = f"<{tag}>"
    close_tag = f"</{tag}>"

    working = html.unescape(text)
    working = _unwrap_code_fence(working, tag)
    working = normalize_tags(working, tag)

    lowered = working.lower()
    start = lowered.find(open_tag)
    end = lowered.find(close_tag, start) if start >= 0 else -1

    extracted = ""
    if start >= 0 and end >= 0:
        extracted = working[start + len(open_tag):end]
    elif not strict and start >= 0:
        extracted = working[start + len(open_tag):]
        tail = extracted.lower()
        cuts = [pos for pos in (tail.find(b) for b in BOUNDARY_TAGS) if pos >= 0]
        if cuts:
            extracted = extracted[:min(cuts)]

    if not extracted and not strict and start < 0 and not re.search(r"<.*?>", working):
        extracted = working

    return extracted.strip()


class TagExtractor(ISectionExtractor):
    """Default section extractor over XML-ish tags."""

    def __init__(self, strict: bool = False):
        self.strict = strict

    def extract_section(self, raw_text: str, section_name: str) -> str:
        return extract_text_between_tags(raw_text, section_name, strict=self.strict)
