from __future__ import annotations

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field


load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(validate_default=True)

    server_name: str = os.getenv("DICE_SERVER_NAME", "mcp-dice-resolver")

    # Passes a forever reroll may take before the request is rejected.
    max_reroll_passes: int = Field(default=int(os.getenv("DICE_MAX_REROLL_PASSES", "1000")), ge=1)

    # Largest dice count accepted by the tool.
    max_dice: int = Field(default=int(os.getenv("DICE_MAX_DICE", "1000")), ge=1)

    log_level: str = os.getenv("DICE_LOG_LEVEL", "INFO")


settings = Settings()
