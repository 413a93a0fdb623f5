from typing import List, Optional
from guardian.models import Violation, ViolationReport
from guardian.prompt_builder import excerpt

EXCERPT_CHARS = 60


def _format_bucket(title: str, violations: List[Violation], with_excerpt: bool) -> str:
    text = f"{title} ({len(violations)}):\n"
    for v in violations:
        text += f"  - {v.kind}: {v.message}\n"
        if with_excerpt and v.matched_text:
            text += f"    \"{excerpt(v.matched_text, EXCERPT_CHARS)}\"\n"
    return text


def summarize(violations: List[Violation]) -> Optional[ViolationReport]:
    """Group violations by severity into a readable summary. None when there is nothing to report."""
    if not violations:
        return None

    high = [v for v in violations if v.severity == "high"]
    medium = [v for v in violations if v.severity == "medium"]
    low = [v for v in violations if v.severity == "low"]

    blocks = []
    if high:
        blocks.append(_format_bucket("High Priority", high, with_excerpt=True))
    if medium:
        blocks.append(_format_bucket("Medium Priority", medium, with_excerpt=True))
    if low:
        blocks.append(_format_bucket("Low Priority", low, with_excerpt=False))

    text = f"Found {len(violations)} guideline violation(s):\n\n" + "\n".join(blocks)

    return ViolationReport(high=high, medium=medium, low=low, text=text.rstrip("\n"))
