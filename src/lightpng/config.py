"""Configuration settings for LightPNG."""

from dataclasses import dataclass


@dataclass
class QualityConfig:
    """PSNR thresholds (dB) that gate lossy steps and the final inspection."""

    # Minimum PSNR for accepting quantization, per quality level
    HIGH_MIN_PSNR: float = 45.0
    DEFAULT_MIN_PSNR: float = 42.0
    LOW_MIN_PSNR: float = 39.0

    # Global floor for the final inspection of original vs optimised pixels
    INSPECTION_MIN_PSNR: float = 35.0

    # Identifier written into the "by" field of the embedded comment
    TOOL_NAME: str = "LightFile"

    # tEXt keyword reserved for the optimisation comment
    COMMENT_KEYWORD: str = "LightFile"

    def __post_init__(self) -> None:
        thresholds = [
            self.HIGH_MIN_PSNR,
            self.DEFAULT_MIN_PSNR,
            self.LOW_MIN_PSNR,
            self.INSPECTION_MIN_PSNR,
        ]
        if any(t <= 0 for t in thresholds):
            raise ValueError(f"PSNR thresholds must be positive, got {thresholds}")

        if not self.LOW_MIN_PSNR <= self.DEFAULT_MIN_PSNR <= self.HIGH_MIN_PSNR:
            raise ValueError(
                "PSNR thresholds must satisfy LOW <= DEFAULT <= HIGH, got "
                f"{self.LOW_MIN_PSNR} / {self.DEFAULT_MIN_PSNR} / {self.HIGH_MIN_PSNR}"
            )

        # Keyword rules from the PNG spec: 1-79 Latin-1 bytes, no NUL
        if not 1 <= len(self.COMMENT_KEYWORD) <= 79 or "\x00" in self.COMMENT_KEYWORD:
            raise ValueError(f"Invalid tEXt keyword: {self.COMMENT_KEYWORD!r}")


@dataclass
class EngineConfig:
    """Configuration for the quantization engine with environment variable overrides."""

    # Which quantizer backs the pipeline: "pillow" (in-process) or "pngquant" (CLI)
    # Override with: LIGHTPNG_QUANTIZER
    QUANTIZER: str = "pillow"

    # Path to the pngquant executable.
    # Usually "pngquant" works if installed via package manager
    # Override with: LIGHTPNG_PNGQUANT_PATH
    PNGQUANT_PATH: str = "pngquant"

    # Settings matching the pngquant CLI defaults
    SPEED: int = 4
    MIN_QUALITY: int = 0
    MAX_QUALITY: int = 100
    DITHERING: float = 1.0
    MAX_COLORS: int = 256

    # Hard timeout for external quantizer processes (seconds, None disables)
    TIMEOUT_SECONDS: int | None = 60

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        import os

        env_overrides = {
            "QUANTIZER": "LIGHTPNG_QUANTIZER",
            "PNGQUANT_PATH": "LIGHTPNG_PNGQUANT_PATH",
        }

        for attr_name, env_var in env_overrides.items():
            env_value = os.getenv(env_var)
            if env_value:
                setattr(self, attr_name, env_value)

        if self.QUANTIZER not in {"pillow", "pngquant"}:
            raise ValueError(f"Unknown quantizer: {self.QUANTIZER}")
        if not 1 <= self.SPEED <= 11:
            raise ValueError(f"SPEED must be between 1 and 11, got {self.SPEED}")
        if not 0 <= self.MIN_QUALITY <= self.MAX_QUALITY <= 100:
            raise ValueError(
                f"Quality range must satisfy 0 <= min <= max <= 100, got "
                f"{self.MIN_QUALITY}-{self.MAX_QUALITY}"
            )
        if not 0.0 <= self.DITHERING <= 1.0:
            raise ValueError(f"DITHERING must be in [0, 1], got {self.DITHERING}")
        if not 2 <= self.MAX_COLORS <= 256:
            raise ValueError(f"MAX_COLORS must be between 2 and 256, got {self.MAX_COLORS}")


# Permission bits for files written by the optimiser
OUTPUT_FILE_MODE = 0o600

DEFAULT_QUALITY_CONFIG = QualityConfig()
DEFAULT_ENGINE_CONFIG = EngineConfig()
