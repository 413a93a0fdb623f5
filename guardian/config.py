from pathlib import Path
from pydantic_settings import BaseSettings
from guardian.models import RuleConfig


class Settings(BaseSettings):
    """Global settings from .env and environment."""

    provider: str = "anthropic"
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    model_name: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4000
    rewrite_timeout: float = 60.0
    workspace_root: Path = Path("./workspace")

    enabled: bool = True
    auto_correct: bool = True
    show_warnings: bool = True
    show_no_violations: bool = False
    strict_mode: bool = False

    scene_endings: bool = True
    show_dont_tell: bool = True
    dialogue_naturalness: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def active_api_key(self) -> str:
        if self.provider.lower() == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    def validate_provider(self):
        """Ensure provider and API key are configured."""
        if self.provider.lower() == "anthropic":
            if not self.anthropic_api_key:
                raise ValueError("ANTHROPIC_API_KEY not set in .env or environment")
        elif self.provider.lower() == "openai":
            if not self.openai_api_key:
                raise ValueError("OPENAI_API_KEY not set in .env or environment")
        else:
            raise ValueError(f"Unknown provider: {self.provider}")

    def rule_config(self) -> RuleConfig:
        """Snapshot of the rule toggles for one analysis pass."""
        return RuleConfig(
            scene_endings=self.scene_endings,
            show_dont_tell=self.show_dont_tell,
            dialogue_naturalness=self.dialogue_naturalness,
            strict_mode=self.strict_mode,
            auto_correct=self.auto_correct,
        )


settings = Settings()
