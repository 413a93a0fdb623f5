import asyncio
import logging
from typing import List, Optional, Tuple

from guardian.models import AnalysisResult, PatternLibrary, RewriteResult, Violation
from guardian.prompt_builder import build_correction_prompt
from guardian.providers import LLMProvider
from guardian.lint.analyzer import sentence_spans
from guardian.lint.patterns import DEFAULT_LIBRARY

logger = logging.getLogger(__name__)

SHOW_DONT_TELL_MARKER = "[SHOW-DON'T-TELL: {}]"
MAX_REMOVED_SENTENCES = 2


async def request_rewrite(
    backend: LLMProvider,
    prompt: str,
    original: str,
    max_tokens: int = 4000,
    timeout: Optional[float] = None,
) -> RewriteResult:
    """Make a single rewrite call and classify its outcome."""
    try:
        response = await asyncio.wait_for(backend.generate(prompt, max_tokens=max_tokens), timeout)
    except asyncio.TimeoutError:
        logger.warning("Rewrite backend timed out after %ss", timeout)
        return RewriteResult(status="timeout", error=f"timed out after {timeout}s")
    except Exception as e:
        logger.warning("Rewrite backend failed: %s", e)
        return RewriteResult(status="failed", error=str(e))

    candidate = (response or "").strip()
    if not candidate:
        return RewriteResult(status="empty")
    if candidate == original.strip():
        return RewriteResult(status="unchanged", text=candidate)
    return RewriteResult(status="ok", text=candidate)


def scene_ending_cut(text: str, library: PatternLibrary = DEFAULT_LIBRARY) -> int:
    """Offset to truncate text at so that trailing reflective sentences are dropped.

    Returns len(text) when nothing should be removed.
    """
    spans = sentence_spans(text)
    if len(spans) <= MAX_REMOVED_SENTENCES:
        return len(text)

    removed = 0
    while removed < MAX_REMOVED_SENTENCES:
        start, end = spans[-1 - removed]
        if not library.is_forbidden_ending(text[start:end]):
            break
        removed += 1

    if removed == 0:
        return len(text)
    return spans[-1 - removed][1]


def _locate_spans(text: str, violations: List[Violation]) -> List[Tuple[int, int]]:
    """Anchor each violation to one occurrence of its matched text."""
    spans = []
    cursor = 0
    for v in violations:
        if v.span and text[v.span[0]:v.span[1]] == v.matched_text:
            spans.append(v.span)
            continue
        found = text.find(v.matched_text, cursor)
        if found == -1 or not v.matched_text:
            continue
        spans.append((found, found + len(v.matched_text)))
        cursor = found + len(v.matched_text)

    unique = sorted(set(spans))
    kept = []
    for start, end in unique:
        if kept and start < kept[-1][1]:
            continue
        kept.append((start, end))
    return kept


def mark_emotion_labels(text: str, violations: List[Violation], limit: Optional[int] = None) -> str:
    """Wrap each emotion label in a marker for manual revision.

    Spans ending past `limit` are left alone.
    """
    limit = len(text) if limit is None else limit
    pieces = []
    last = 0
    for start, end in _locate_spans(text, violations):
        if end > limit:
            continue
        pieces.append(text[last:start])
        pieces.append(SHOW_DONT_TELL_MARKER.format(text[start:end]))
        last = end
    pieces.append(text[last:])
    return "".join(pieces)


def apply_fallback(
    text: str,
    analysis: AnalysisResult,
    library: PatternLibrary = DEFAULT_LIBRARY,
) -> str:
    """Deterministic local edits used when the rewrite backend is unavailable."""
    cut = len(text)
    if analysis.of_kind("scene_ending"):
        cut = scene_ending_cut(text, library)

    corrected = text
    emotion_violations = analysis.of_kind("show_dont_tell")
    if emotion_violations:
        corrected = mark_emotion_labels(text, emotion_violations, limit=cut)

    if cut < len(text):
        # Markers only land before the cut, so the tail length is unchanged.
        corrected = corrected[:len(corrected) - (len(text) - cut)]
        logger.info("Fallback removed %d trailing character(s) of reflective ending", len(text) - cut)

    return corrected


async def correct(
    text: str,
    analysis: AnalysisResult,
    backend: Optional[LLMProvider],
    max_tokens: int = 4000,
    timeout: Optional[float] = None,
    guidelines: Optional[str] = None,
    library: PatternLibrary = DEFAULT_LIBRARY,
) -> str:
    """Correct text: rewrite via the backend, or fall back to local edits."""
    if not analysis.has_violations:
        return text

    if backend is not None:
        prompt = build_correction_prompt(text, analysis.violations, guidelines)
        result = await request_rewrite(backend, prompt, text, max_tokens=max_tokens, timeout=timeout)
        if result.ok:
            logger.info("Rewrite backend returned a corrected message")
            return result.text
        logger.info("Rewrite not usable (%s), applying fallback corrections", result.status)

    return apply_fallback(text, analysis, library)
