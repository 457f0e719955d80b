"""Process-wide, read-only handle around the exported classifier."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import torch

from ..utils.logger import get_logger

logger = get_logger(__name__)

_GCS_PUBLIC_HOST = "https://storage.googleapis.com"


def _resolve_artifact(location: str, cache_dir: Path) -> Path:
    """Return a local path for ``location``, downloading remote artifacts once."""
    if location.startswith("gs://"):
        location = f"{_GCS_PUBLIC_HOST}/{location[len('gs://'):]}"

    parsed = urlparse(location)
    if parsed.scheme in ("http", "https"):
        cache_dir.mkdir(parents=True, exist_ok=True)
        target = cache_dir / Path(parsed.path).name
        if not target.exists():
            logger.info("Downloading model artifact", url=location, target=str(target))
            torch.hub.download_url_to_file(location, str(target), progress=False)
        return target

    path = Path(location)
    if not path.exists():
        raise FileNotFoundError(f"Model artifact not found: {path}")
    return path


@dataclass(frozen=True, slots=True)
class Classifier:
    """Immutable wrapper; forward passes never touch parameters or buffers."""

    module: torch.nn.Module
    device: torch.device = field(default_factory=lambda: torch.device("cpu"))

    def __post_init__(self) -> None:
        self.module.to(self.device)
        self.module.eval()
        for parameter in self.module.parameters():
            parameter.requires_grad_(False)

    @classmethod
    def load(
        cls,
        location: str,
        cache_dir: Path | str = "models",
        device: Optional[torch.device] = None,
    ) -> "Classifier":
        device = device or torch.device("cuda" if torch.cuda.is_available() else "cpu")
        path = _resolve_artifact(location, Path(cache_dir))
        module = torch.jit.load(str(path), map_location=device)
        logger.info("Loaded classifier", path=str(path), device=str(device))
        return cls(module=module, device=device)

    def classify(self, tensor: torch.Tensor) -> float:
        with torch.inference_mode():
            output = self.module(tensor.to(self.device))
        score = float(output.reshape(-1)[0].item())
        if not math.isfinite(score):
            raise ValueError("Classifier produced a non-finite score")
        return score
