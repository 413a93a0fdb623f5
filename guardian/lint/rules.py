import logging
import yaml
from pathlib import Path
from typing import Mapping, Optional, Tuple
from pydantic import ValidationError
from guardian.models import Pattern, PatternLibrary
from guardian.lint.patterns import DEFAULT_LIBRARY

logger = logging.getLogger(__name__)


def _load_patterns(entries: list, category: str) -> Tuple[Pattern, ...]:
    """Build patterns from YAML entries, skipping malformed ones."""
    patterns = []
    for i, entry in enumerate(entries):
        if isinstance(entry, str):
            name, regex = f"{category}_{i + 1}", entry
        elif isinstance(entry, dict) and entry.get("regex"):
            name, regex = entry.get("name", f"{category}_{i + 1}"), entry["regex"]
        else:
            logger.warning("Skipping %s entry %d: expected a regex string or mapping, got %r", category, i + 1, entry)
            continue
        try:
            patterns.append(Pattern(name=name, regex=regex, category=category))
        except ValidationError as e:
            logger.warning("Skipping malformed pattern %r: %s", regex, e.errors()[0]["msg"])
    return tuple(patterns)


def _load_pattern_list(entries, category: str, default: Tuple[Pattern, ...]) -> Tuple[Pattern, ...]:
    if entries is None:
        return default
    if not isinstance(entries, list):
        logger.warning("Expected a list of %s patterns, got %r; using built-in patterns", category, entries)
        return default
    return _load_patterns(entries, category)


def _load_single(entry, category: str, default: Pattern) -> Pattern:
    if not entry:
        return default
    loaded = _load_patterns([entry], category)
    return loaded[0] if loaded else default


def _load_keywords(keywords) -> Mapping[str, Tuple[str, ...]]:
    if keywords is None:
        return DEFAULT_LIBRARY.good_ending_keywords
    if not isinstance(keywords, dict):
        logger.warning("good_ending_keywords must be a mapping, got %r; using built-in keywords", keywords)
        return DEFAULT_LIBRARY.good_ending_keywords

    loaded = {}
    for category, words in keywords.items():
        if words is None:
            words = []
        if not isinstance(words, list):
            logger.warning("Skipping keyword category '%s': expected a list, got %r", category, words)
            continue
        loaded[str(category)] = tuple(str(w) for w in words if w is not None)
    return loaded


def load_pattern_library(path: Path) -> PatternLibrary:
    """Load the pattern library from YAML, falling back to the built-in rules."""
    if not path.exists():
        return DEFAULT_LIBRARY

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not data:
        return DEFAULT_LIBRARY

    if not isinstance(data, dict):
        logger.warning("Pattern file %s is not a mapping; using built-in patterns", path)
        return DEFAULT_LIBRARY

    return PatternLibrary(
        forbidden_endings=_load_pattern_list(
            data.get("forbidden_endings"), "forbidden_ending", DEFAULT_LIBRARY.forbidden_endings
        ),
        emotion_labels=_load_pattern_list(
            data.get("emotion_labels"), "emotion_label", DEFAULT_LIBRARY.emotion_labels
        ),
        good_ending_keywords=_load_keywords(data.get("good_ending_keywords")),
        dialogue_formality=_load_single(
            data.get("dialogue_formality"), "formality", DEFAULT_LIBRARY.dialogue_formality
        ),
        formality_exemption=_load_single(
            data.get("formality_exemption"), "formality_exemption", DEFAULT_LIBRARY.formality_exemption
        ),
    )


def dump_pattern_library(library: PatternLibrary, path: Path) -> None:
    """Write a pattern library to YAML in the format load_pattern_library reads."""
    data = {
        "forbidden_endings": [{"name": p.name, "regex": p.regex} for p in library.forbidden_endings],
        "emotion_labels": [{"name": p.name, "regex": p.regex} for p in library.emotion_labels],
        "good_ending_keywords": {k: list(v) for k, v in library.good_ending_keywords.items()},
        "dialogue_formality": {
            "name": library.dialogue_formality.name,
            "regex": library.dialogue_formality.regex,
        },
        "formality_exemption": {
            "name": library.formality_exemption.name,
            "regex": library.formality_exemption.regex,
        },
    }
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_guidelines(path: Path) -> Optional[str]:
    """Load storytelling guidelines text, or None if the file is missing or blank."""
    if not path.exists():
        return None

    with open(path, "r", encoding="utf-8") as f:
        content = f.read().strip()

    return content or None
