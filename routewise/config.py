"""Configuration management."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field


# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Photos larger than this are rejected before they are sent for recognition
MAX_PHOTO_BYTES = 4 * 1024 * 1024

# Center of the USA, used when no location or points are known
FALLBACK_CENTER = (37.0902, -95.7129)

TRAVEL_MODE = "driving"


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")


class Settings(BaseModel):
    """Application settings."""
    
    # Google Maps Platform (geocoding + directions)
    google_maps_api_key: str | None = Field(
        default_factory=lambda: os.getenv("GOOGLE_MAPS_API_KEY")
    )
    
    # AI Model settings
    llm_api_key: str | None = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY") or os.getenv("GITHUB_TOKEN")
    )
    llm_base_url: str = Field(
        default_factory=lambda: os.getenv("LLM_BASE_URL", "https://models.github.ai/inference")
    )
    model_id: str = Field(
        default_factory=lambda: os.getenv("MODEL_ID", "openai/gpt-4.1")
    )
    use_ollama: bool = Field(default_factory=lambda: _env_flag("USE_OLLAMA"))
    ollama_url: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_URL", "http://localhost:11434/v1")
    )
    
    # "llm" asks the model for an order, "nearest" uses the greedy heuristic
    route_optimizer: str = Field(
        default_factory=lambda: os.getenv("ROUTE_OPTIMIZER", "llm").lower()
    )
    
    http_timeout: float = Field(
        default_factory=lambda: float(os.getenv("HTTP_TIMEOUT", "30"))
    )
    log_level: str = Field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "WARNING").upper()
    )
    
    # Output settings
    output_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("OUTPUT_DIR", Path(__file__).parent.parent / "output"))
    )
    
    def validate_required(self) -> list[str]:
        """Check for missing required configuration."""
        missing = []
        
        if not self.google_maps_api_key:
            missing.append("GOOGLE_MAPS_API_KEY")
        
        # A local Ollama model needs no key; the deterministic optimizer needs no model at all
        if self.route_optimizer == "llm" and not self.use_ollama and not self.llm_api_key:
            missing.append("GITHUB_TOKEN or OPENAI_API_KEY")
        
        if self.route_optimizer not in ("llm", "nearest"):
            missing.append("ROUTE_OPTIMIZER (expected 'llm' or 'nearest')")
        
        return missing


# Global settings instance
settings = Settings()
