"""
Mind map configuration.

Settings are loaded from:
1. Environment variables (prefixed with MINDMAP_)
2. A ``.env`` file in the working directory

Key settings:
- MINDMAP_NODE_SEP / MINDMAP_RANK_SEP / MINDMAP_EDGE_SEP: layered layout spacing
- MINDMAP_TREE_HORIZONTAL_SPACING / MINDMAP_TREE_VERTICAL_SPACING: ingestion tree layout
- MINDMAP_ALLOW_LOSSY_IMPORT: accept unknown JSON through the best-effort fallback
- MINDMAP_RESPONDER_URL: question-answering service base URL
"""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Mind map service configuration settings."""

    app_name: str = "Mind Map Service"
    log_level: str = "INFO"

    # Default node style
    default_background_color: str = "#ffffff"
    default_text_color: str = "#333333"
    default_font_size: int = 14
    min_font_size: int = 8

    # Layered layout
    node_sep: float = 150
    rank_sep: float = 200
    edge_sep: float = 80
    node_width: float = 200
    node_height: float = 50
    notes_height_cap: float = 200
    isolated_offset: float = 200
    direction: str = "LR"  # "LR" (horizontal) or "TB" (vertical)

    # Recursive tree layout (ingestion)
    tree_start_x: float = 250
    tree_start_y: float = 200
    tree_horizontal_spacing: float = 300
    tree_vertical_spacing: float = 150

    # Import
    allow_lossy_import: bool = True

    # Question-answering responder
    responder_url: str | None = None
    responder_timeout: float = 30.0

    model_config = SettingsConfigDict(
        env_prefix="MINDMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.direction not in ("LR", "TB"):
            logger.warning("Unknown layout direction %r, falling back to LR", self.direction)
            self.direction = "LR"


settings = Settings()
