import logging
from abc import ABC, abstractmethod
from typing import Optional

from guardian.config import Settings
from guardian.models import ChatMessage, GuardOutcome, PatternLibrary, ViolationReport
from guardian.providers import LLMProvider
from guardian.lint.analyzer import analyze
from guardian.lint.patterns import DEFAULT_LIBRARY
from guardian.pipelines.correct import correct
from guardian.pipelines.report import summarize

logger = logging.getLogger(__name__)


class GuardianSink(ABC):
    """Where corrected messages and reports go."""

    @abstractmethod
    def replace_message(self, message_id: str, text: str) -> None:
        """Write corrected text back to the message store and re-render it."""
        pass

    @abstractmethod
    def notify(self, text: str, level: str) -> None:
        """Surface a message to the user. level is error, warning, info or success."""
        pass


def notification_level(report: ViolationReport) -> str:
    """Map the most severe bucket of a report to a notification class."""
    if report.high:
        return "error"
    if report.medium:
        return "warning"
    return "info"


class StoryGuardian:
    """Runs analysis, correction and reporting for each incoming message."""

    def __init__(
        self,
        backend: Optional[LLMProvider],
        sink: GuardianSink,
        max_tokens: int = 4000,
        timeout: Optional[float] = None,
        guidelines: Optional[str] = None,
        library: PatternLibrary = DEFAULT_LIBRARY,
    ):
        self.backend = backend
        self.sink = sink
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.guidelines = guidelines
        self.library = library

    async def handle_message(self, message: ChatMessage, settings: Settings) -> GuardOutcome:
        """Validate one message and apply corrections/warnings per settings."""
        if not settings.enabled or message.is_user:
            return GuardOutcome(message_id=message.message_id, skipped=True)

        config = settings.rule_config()
        analysis = analyze(message.text, config, self.library)
        outcome = GuardOutcome(message_id=message.message_id, analysis=analysis)

        if not analysis.has_violations:
            logger.info("No violations detected in message %s", message.message_id)
            if settings.show_no_violations:
                self.sink.notify(
                    f"Message passed all validation checks! ({analysis.word_count} words)",
                    "success",
                )
            return outcome

        logger.info("Found %d violation(s) in message %s", len(analysis.violations), message.message_id)

        if config.auto_correct:
            corrected = await correct(
                message.text,
                analysis,
                self.backend,
                max_tokens=self.max_tokens,
                timeout=self.timeout,
                guidelines=self.guidelines,
                library=self.library,
            )
            outcome.corrected_text = corrected
            if corrected != message.text:
                self.sink.replace_message(message.message_id, corrected)
                outcome.correction_applied = True
                logger.info("Auto-corrected message %s", message.message_id)

        if settings.show_warnings:
            report = summarize(analysis.violations)
            outcome.report = report
            self.sink.notify(report.text, notification_level(report))

        return outcome

    async def on_message_received(self, message: ChatMessage, settings: Settings) -> GuardOutcome:
        return await self.handle_message(message, settings)

    async def on_message_swiped(self, message: ChatMessage, settings: Settings) -> GuardOutcome:
        return await self.handle_message(message, settings)
