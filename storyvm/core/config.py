"""
Runtime configuration.

Host policy knobs for the dialogue interpreter and the script layer,
loaded from a JSON file and validated with Pydantic.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)


class RuntimeConfig(BaseModel):
    """
    Configuration for the narrative runtime.

    Attributes:
        dialogue_dir: Directory holding dialogue assets (*.json)
        script_paths: Script sources, loaded in this order
        start_dialogue: Node shown when a game starts
        commands: Closed set of command names the host accepts
        exit_commands: Commands that end the session once acknowledged
        auto_continue_text: Coalesce consecutive Text lines into one step
        max_silent_steps: Instructions a session may run without yielding
        raise_handler_errors: Raise HandlerChainError after a failed dispatch
        extra_events: Additional event names per archetype ("game", "player", "map")
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    dialogue_dir: Path = Path("game/dialogue")
    script_paths: list[Path] = Field(
        default_factory=lambda: [
            Path("game/scripts/prelude.py"),
            Path("game/scripts/startup.py"),
        ]
    )
    start_dialogue: str = "Start"
    commands: list[str] = Field(default_factory=lambda: ["ExitLevel", "PlaySound"])
    exit_commands: list[str] = Field(default_factory=lambda: ["ExitLevel"])
    auto_continue_text: bool = False
    max_silent_steps: int = Field(default=1000, gt=0)
    raise_handler_errors: bool = True
    extra_events: dict[str, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _exit_commands_are_commands(self) -> RuntimeConfig:
        unknown = set(self.exit_commands) - set(self.commands)
        if unknown:
            raise ValueError(f"exit_commands not in commands: {sorted(unknown)}")
        return self

    def resolve(self, base: str | Path) -> RuntimeConfig:
        """Return a copy with relative paths resolved against base."""
        base = Path(base)
        return self.model_copy(update={
            "dialogue_dir": base / self.dialogue_dir,
            "script_paths": [base / p for p in self.script_paths],
        })


def load_config(path: str | Path) -> RuntimeConfig:
    """
    Load configuration from a JSON file.

    A missing file yields the defaults. Invalid content raises
    pydantic.ValidationError.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found, using defaults: {path}")
        return RuntimeConfig()

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    config = RuntimeConfig.model_validate(data)
    logger.debug(f"Loaded config from {path}")
    return config
