"""Tests for guardian.pipelines.correct — rewrite call, fallback edits, and correct()."""
import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock
from guardian.models import AnalysisResult, RuleConfig, Violation
from guardian.lint.analyzer import analyze
from guardian.pipelines.correct import (
    SHOW_DONT_TELL_MARKER,
    request_rewrite,
    scene_ending_cut,
    mark_emotion_labels,
    apply_fallback,
    correct,
)

MARKER_OVERHEAD = len(SHOW_DONT_TELL_MARKER.format(""))

REFLECTIVE = (
    "He came home. He set his keys down. She was asleep. "
    "And I would do everything in my power to protect that. One day at a time."
)


def _backend(returns=None, raises=None):
    backend = MagicMock()
    if raises is not None:
        backend.generate = AsyncMock(side_effect=raises)
    else:
        backend.generate = AsyncMock(return_value=returns)
    return backend


# ── request_rewrite ─────────────────────────────────────────────────
class TestRequestRewrite:
    def test_ok(self):
        result = asyncio.run(request_rewrite(_backend("  New text.  "), "prompt", "Old text."))
        assert result.ok
        assert result.text == "New text."

    def test_failed(self):
        result = asyncio.run(request_rewrite(_backend(raises=RuntimeError("boom")), "prompt", "Old."))
        assert result.status == "failed"
        assert "boom" in result.error

    def test_empty(self):
        result = asyncio.run(request_rewrite(_backend("   "), "prompt", "Old."))
        assert result.status == "empty"

    def test_none_response(self):
        result = asyncio.run(request_rewrite(_backend(None), "prompt", "Old."))
        assert result.status == "empty"

    def test_unchanged(self):
        result = asyncio.run(request_rewrite(_backend("Old.\n"), "prompt", "Old."))
        assert result.status == "unchanged"
        assert not result.ok

    def test_timeout(self):
        class SlowBackend:
            async def generate(self, prompt, max_tokens=4000):
                await asyncio.sleep(1)
                return "late"

        result = asyncio.run(request_rewrite(SlowBackend(), "prompt", "Old.", timeout=0.01))
        assert result.status == "timeout"

    def test_passes_max_tokens(self):
        backend = _backend("New.")
        asyncio.run(request_rewrite(backend, "prompt", "Old.", max_tokens=123))
        backend.generate.assert_awaited_once_with("prompt", max_tokens=123)


# ── scene ending removal ────────────────────────────────────────────
class TestSceneEndingCut:
    def test_removes_two_reflective_sentences(self):
        cut = scene_ending_cut(REFLECTIVE)
        assert REFLECTIVE[:cut] == "He came home. He set his keys down. She was asleep."

    def test_removes_at_most_two(self):
        text = "A thing. One day at a time. One day at a time. One day at a time."
        assert text[:scene_ending_cut(text)] == "A thing. One day at a time."

    def test_only_last_is_reflective(self):
        text = "He came home. It was late. One day at a time."
        assert text[:scene_ending_cut(text)] == "He came home. It was late."

    def test_unterminated_reflective_tail_removed(self):
        text = "He came home. It was late. We would protect them, one day at a time"
        assert text[:scene_ending_cut(text)] == "He came home. It was late."

    def test_last_is_concrete(self):
        text = "One day at a time. It was late. He opened the fridge."
        assert scene_ending_cut(text) == len(text)

    @pytest.mark.parametrize("text", [
        "One day at a time.",
        "I would protect her. One day at a time.",
    ])
    def test_no_removal_with_two_or_fewer_sentences(self, text):
        assert scene_ending_cut(text) == len(text)


# ── emotion label marking ───────────────────────────────────────────
class TestMarkEmotionLabels:
    def test_marks_each_occurrence(self):
        text = "I felt angry. Then I felt angry again. He left the room."
        analysis = analyze(text, RuleConfig(scene_endings=False, dialogue_naturalness=False))
        marked = mark_emotion_labels(text, analysis.violations)
        assert marked == (
            "[SHOW-DON'T-TELL: I felt angry]. Then [SHOW-DON'T-TELL: I felt angry] again. He left the room."
        )
        assert len(marked) - len(text) == 2 * MARKER_OVERHEAD

    def test_unmatched_text_unchanged(self):
        text = "The cup was warm. I was scared. The window rattled."
        analysis = analyze(text, RuleConfig(scene_endings=False, dialogue_naturalness=False))
        marked = mark_emotion_labels(text, analysis.violations)
        start = text.index("I was scared")
        assert marked[:start] == text[:start]
        assert marked.endswith(text[start + len("I was scared"):])
        assert len(marked) - len(text) == MARKER_OVERHEAD

    def test_violation_without_span(self):
        text = "I was sad. Later I was sad again."
        violations = [
            Violation(kind="show_dont_tell", severity="medium", matched_text="I was sad", message="m"),
            Violation(kind="show_dont_tell", severity="medium", matched_text="I was sad", message="m"),
        ]
        marked = mark_emotion_labels(text, violations)
        assert marked == "[SHOW-DON'T-TELL: I was sad]. Later [SHOW-DON'T-TELL: I was sad] again."

    def test_missing_text_ignored(self):
        v = Violation(kind="show_dont_tell", severity="medium", matched_text="I felt happy", message="m")
        assert mark_emotion_labels("Nothing here.", [v]) == "Nothing here."


# ── apply_fallback ──────────────────────────────────────────────────
class TestApplyFallback:
    def test_scene_ending_removed(self):
        analysis = analyze(REFLECTIVE, RuleConfig())
        assert apply_fallback(REFLECTIVE, analysis) == "He came home. He set his keys down. She was asleep."

    def test_scene_and_emotion(self):
        text = "He came home. I was sad. It was late. One day at a time."
        analysis = analyze(text, RuleConfig())
        assert apply_fallback(text, analysis) == "He came home. [SHOW-DON'T-TELL: I was sad]. It was late."

    def test_emotion_in_removed_sentence_skipped(self):
        text = "He came home. It was late. I felt sad, one day at a time."
        analysis = analyze(text, RuleConfig())
        assert apply_fallback(text, analysis) == "He came home. It was late."

    def test_dialogue_not_fixed(self):
        text = 'He turned. "I am not going," she said.'
        analysis = analyze(text, RuleConfig())
        assert [v.kind for v in analysis.violations] == ["dialogue"]
        assert apply_fallback(text, analysis) == text

    def test_scene_violation_short_text_unchanged(self):
        text = "I would protect her. One day at a time."
        analysis = analyze(text, RuleConfig())
        assert analysis.has_violations
        assert apply_fallback(text, analysis) == text


# ── correct ─────────────────────────────────────────────────────────
class TestCorrect:
    def test_no_violations_returns_input(self):
        text = "He grabbed the keys and opened the door."
        backend = _backend("Something else.")
        cfg = RuleConfig(strict_mode=True)
        result = asyncio.run(correct(text, analyze(text, cfg), backend))
        assert result == text
        backend.generate.assert_not_awaited()

    def test_backend_rewrite_used(self):
        backend = _backend("He came home. He set his keys down. She was asleep. He pulled the blanket up.")
        result = asyncio.run(correct(REFLECTIVE, analyze(REFLECTIVE, RuleConfig()), backend))
        assert result.endswith("He pulled the blanket up.")
        prompt = backend.generate.await_args.args[0]
        assert REFLECTIVE in prompt
        assert "scene_ending" in prompt

    def test_backend_failure_falls_back(self):
        backend = _backend(raises=ConnectionError("offline"))
        result = asyncio.run(correct(REFLECTIVE, analyze(REFLECTIVE, RuleConfig()), backend))
        assert result == "He came home. He set his keys down. She was asleep."

    def test_unchanged_response_falls_back(self):
        backend = _backend(REFLECTIVE)
        result = asyncio.run(correct(REFLECTIVE, analyze(REFLECTIVE, RuleConfig()), backend))
        assert result == "He came home. He set his keys down. She was asleep."

    def test_empty_response_falls_back(self):
        backend = _backend("")
        result = asyncio.run(correct(REFLECTIVE, analyze(REFLECTIVE, RuleConfig()), backend))
        assert result == "He came home. He set his keys down. She was asleep."

    def test_no_backend_uses_fallback(self):
        text = "She slammed the door. I felt angry. He stared at the wall."
        result = asyncio.run(correct(text, analyze(text, RuleConfig()), None))
        assert result == "She slammed the door. [SHOW-DON'T-TELL: I felt angry]. He stared at the wall."

    def test_nothing_applicable_returns_input(self):
        analysis = AnalysisResult(
            violations=[Violation(kind="dialogue", severity="low", matched_text="We are here", message="m")],
        )
        text = '"We are here," she said.'
        assert asyncio.run(correct(text, analysis, None)) == text
