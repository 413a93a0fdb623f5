from typing import Optional, List
from guardian.models import Violation

EXCERPT_CHARS = 100

DEFAULT_GUIDELINES = """[Scene Endings - CRITICAL]

FORBIDDEN ENDING PATTERNS (NEVER USE):
- Philosophical reflections on the future
- Determinations about what will/must happen
- "One day at a time" or similar platitudes
- Life lesson conclusions
- Thematic statements
- Chapter-ending closure feelings
- Resolution statements that wrap up emotional arcs

REQUIRED ENDING TYPES:
- Physical Action: Character actively doing something mundane
- Dialogue Cut: Someone speaking, conversation continuing
- Immediate Sensory: Something noticed right now
- Interruption/Arrival: Someone entering, something happening

[Show, Don't Tell]
- Never use emotion labels ("I felt angry", "She seemed sad")
- Reveal through physical sensations, body language, actions"""


class PromptBuilder:
    """Assembles prompts with clearly delineated sections."""

    ORDER = [
        "SYSTEM",
        "GUIDELINES",
        "VIOLATIONS",
        "DRAFT_TEXT",
        "TASK",
    ]

    def __init__(self):
        self.sections = {}

    def add_system(self, text: str) -> "PromptBuilder":
        """Add system context."""
        self.sections["SYSTEM"] = text
        return self

    def add_guidelines(self, guidelines: str) -> "PromptBuilder":
        """Add the storytelling guidelines the text is checked against."""
        self.sections["GUIDELINES"] = guidelines.strip() or DEFAULT_GUIDELINES
        return self

    def add_violations(self, violations: List[Violation]) -> "PromptBuilder":
        """Add an itemized list of detected violations."""
        text = "## VIOLATIONS TO FIX:\n\n"
        for i, v in enumerate(violations, 1):
            text += f"{i}. [{v.kind}] {v.message}\n"
            if v.matched_text:
                text += f"   Excerpt: \"{excerpt(v.matched_text, EXCERPT_CHARS)}\"\n"
        self.sections["VIOLATIONS"] = text
        return self

    def add_draft_text(self, draft_text: str) -> "PromptBuilder":
        """Add the text to be corrected."""
        self.sections["DRAFT_TEXT"] = f"```\n{draft_text}\n```"
        return self

    def add_task(self, task_text: str) -> "PromptBuilder":
        """Add the generation task."""
        self.sections["TASK"] = task_text
        return self

    def build(self) -> str:
        """Assemble final prompt."""
        prompt = ""
        for key in self.ORDER:
            if key in self.sections:
                prompt += f"\n## {key}\n\n{self.sections[key]}\n"
        return prompt


def excerpt(text: str, limit: int) -> str:
    """First `limit` characters of text, with an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def build_correction_prompt(
    text: str,
    violations: List[Violation],
    guidelines: Optional[str] = None,
) -> str:
    """Build a prompt asking the backend to rewrite text without the listed violations."""
    builder = PromptBuilder()
    builder.add_system(
        """You are a revision assistant for narrative prose. Your job is to fix storytelling guideline violations while preserving the scene.

CRITICAL:
- Fix all listed violations.
- Preserve point of view, tense, and the author's voice.
- Change as little as possible. Leave compliant sentences untouched.
- Do not add commentary, notes, or explanations."""
    )
    builder.add_guidelines(guidelines or DEFAULT_GUIDELINES)
    builder.add_violations(violations)
    builder.add_draft_text(text)
    builder.add_task(
        """Rewrite the text above so that none of the listed violations remain.

HOW TO FIX:
- Reflective or philosophical endings: replace them with a concrete ending. Physical action, a line of dialogue, an immediate sensory detail, or an interruption.
- Emotion labels ("I felt angry", "she seemed sad"): replace them with physical depiction. Body language, sensation, action.
- Formal dialogue: make it natural with contractions, unless the speaker is deliberately formal.

Keep the same POV, tense, and voice. Minimal changes only.

Return ONLY the corrected text. Nothing else."""
    )
    return builder.build()
