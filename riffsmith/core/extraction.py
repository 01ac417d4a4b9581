"""
Default output extractor: pull one fenced code block out of model text.

Models answer with prose around a fenced block (```js ... ```).  We take
the first block tagged with a JavaScript-ish language, else the first
block of any language, and normalise it before it reaches the engine.

What counts as failure (raw text is always kept for diagnostics):
  - no fence at all
  - an opening fence that never closes (response was cut off)
  - a block that is empty after normalisation

Equivalence for "no changes needed" is whitespace-insensitive: blank lines
and runs of spaces/tabs are ignored, everything else must match.
"""

import logging
import re
import unicodedata

from riffsmith.contracts.extractor import ParseResult

logger = logging.getLogger(__name__)

_FENCED_BLOCK_RE = re.compile(r"```([\w+-]*)[ \t]*\r?\n(.*?)```", re.DOTALL)
_FENCE_RE = re.compile(r"```")
_CODE_LANGUAGES = frozenset({"", "js", "javascript", "strudel", "ts", "typescript"})

# Zero-width / invisible formatting characters that break the engine's parser
_INVISIBLE_RE = re.compile(
    r"[\u200b-\u200f\u202a-\u202e\u2060-\u2064\u206a-\u206f\ufeff]"
)
_HSPACE_RE = re.compile(r"[ \t]+")

NO_CODE_BLOCK = "No code block found in the AI response"
TRUNCATED_CODE_BLOCK = "The AI response was cut off before the code block finished"
EMPTY_CODE_BLOCK = "The AI returned an empty code block"


def normalise_code(raw: str) -> str:
    """NFC, strip invisible characters, LF line endings, no trailing whitespace."""
    text = unicodedata.normalize("NFC", raw)
    text = _INVISIBLE_RE.sub("", text)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = "\n".join(line.rstrip() for line in text.split("\n"))
    return text.strip()


def parse_generated_output(text: str) -> ParseResult:
    """Extract the code block from ``text``."""
    blocks = _FENCED_BLOCK_RE.findall(text)
    if not blocks:
        if _FENCE_RE.search(text):
            return ParseResult.failed(TRUNCATED_CODE_BLOCK, text, parse_failure=True)
        return ParseResult.failed(NO_CODE_BLOCK, text)

    preferred = [body for lang, body in blocks if lang.lower() in _CODE_LANGUAGES]
    body = preferred[0] if preferred else blocks[0][1]
    if len(blocks) > 1:
        logger.debug(f"{len(blocks)} code blocks in response; using the first code block")

    code = normalise_code(body)
    if not code:
        return ParseResult.failed(EMPTY_CODE_BLOCK, text, parse_failure=True)
    return ParseResult.ok(code)


def _equivalence_key(code: str) -> str:
    lines = (_HSPACE_RE.sub(" ", line).strip() for line in normalise_code(code).split("\n"))
    return "\n".join(line for line in lines if line)


def is_code_unchanged(old_code: str, new_code: str) -> bool:
    """True when the two programs differ only in whitespace."""
    return _equivalence_key(old_code) == _equivalence_key(new_code)


class FencedCodeExtractor:
    """``OutputExtractor`` backed by the functions above."""

    def parse(self, text: str) -> ParseResult:
        return parse_generated_output(text)

    def is_unchanged(self, old_code: str, new_code: str) -> bool:
        return is_code_unchanged(old_code, new_code)
