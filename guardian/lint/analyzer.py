import logging
import re
from typing import List, Tuple
from guardian.models import AnalysisResult, PatternLibrary, RuleConfig, Violation
from guardian.lint.patterns import DEFAULT_LIBRARY

logger = logging.getLogger(__name__)

SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
QUOTED_SPEECH_RE = re.compile(r'"([^"]+)"')
ENDING_WINDOW_SIZE = 3


def sentence_spans(text: str) -> List[Tuple[int, int]]:
    """Character spans of each sentence, leading whitespace excluded.

    Unterminated trailing text counts as the final sentence, whether or not
    terminated sentences precede it. A tail with no letters or digits (a
    closing quote, say) is not a sentence.
    """
    spans = []
    last_end = 0
    for match in SENTENCE_RE.finditer(text):
        start, end = match.span()
        last_end = end
        while start < end and text[start].isspace():
            start += 1
        if start < end:
            spans.append((start, end))

    tail = text[last_end:]
    if any(c.isalnum() for c in tail):
        start = last_end + len(tail) - len(tail.lstrip())
        spans.append((start, len(text.rstrip())))

    return spans


def split_sentences(text: str) -> List[str]:
    """Split text into sentences ending in '.', '!' or '?'."""
    return [text[start:end] for start, end in sentence_spans(text)]


def get_last_sentences(text: str, n: int = ENDING_WINDOW_SIZE) -> List[str]:
    """Return the last n sentences, or all of them if there are fewer."""
    return split_sentences(text)[-n:]


def count_words(text: str) -> int:
    return len(text.split())


def check_scene_ending(
    last_sentences: List[str],
    config: RuleConfig,
    library: PatternLibrary = DEFAULT_LIBRARY,
) -> List[Violation]:
    """Check the ending window for reflective closers and missing concrete detail."""
    violations = []
    ending_text = " ".join(last_sentences)

    for pattern in library.forbidden_endings:
        match = pattern.search(ending_text)
        if match:
            violations.append(
                Violation(
                    kind="scene_ending",
                    severity="high",
                    matched_text=match.group(0),
                    message="Scene ending contains forbidden reflective/philosophical pattern",
                    source_pattern=pattern.name,
                )
            )

    ending_lower = ending_text.lower()
    has_good_ending = any(
        keyword.lower() in ending_lower
        for keywords in library.good_ending_keywords.values()
        for keyword in keywords
    )

    if not has_good_ending and config.strict_mode:
        violations.append(
            Violation(
                kind="scene_ending",
                severity="medium",
                matched_text=ending_text,
                message="Scene ending lacks concrete action/dialogue/sensory detail",
            )
        )

    return violations


def check_emotion_labels(text: str, library: PatternLibrary = DEFAULT_LIBRARY) -> List[Violation]:
    """Find emotions that are named instead of shown."""
    violations = []

    for pattern in library.emotion_labels:
        for match in pattern.finditer(text):
            violations.append(
                Violation(
                    kind="show_dont_tell",
                    severity="medium",
                    matched_text=match.group(0),
                    message="Using emotion labels instead of showing through actions/sensations",
                    source_pattern=pattern.name,
                    span=match.span(),
                )
            )

    return violations


def check_dialogue(text: str, library: PatternLibrary = DEFAULT_LIBRARY) -> List[Violation]:
    """Flag quoted speech that avoids contractions."""
    violations = []

    # Exemption cues are looked up in the whole message, not just the quote.
    if library.formality_exemption.search(text):
        return violations

    for match in QUOTED_SPEECH_RE.finditer(text):
        speech = match.group(1)
        if library.dialogue_formality.search(speech):
            violations.append(
                Violation(
                    kind="dialogue",
                    severity="low",
                    matched_text=speech,
                    message="Dialogue may be too formal - consider using contractions",
                    source_pattern=library.dialogue_formality.name,
                    span=match.span(1),
                )
            )

    return violations


def analyze(
    text: str,
    config: RuleConfig,
    library: PatternLibrary = DEFAULT_LIBRARY,
) -> AnalysisResult:
    """Run all enabled checks against a message."""
    if not text or not text.strip():
        return AnalysisResult(violations=[], last_sentences=[], word_count=0)

    last_sentences = get_last_sentences(text, ENDING_WINDOW_SIZE)
    violations = []

    if config.scene_endings:
        violations.extend(check_scene_ending(last_sentences, config, library))

    if config.show_dont_tell:
        violations.extend(check_emotion_labels(text, library))

    if config.dialogue_naturalness:
        violations.extend(check_dialogue(text, library))

    result = AnalysisResult(
        violations=violations,
        last_sentences=last_sentences,
        word_count=count_words(text),
    )
    logger.debug(
        "Analyzed %d words, %d violation(s)", result.word_count, len(result.violations)
    )
    return result
