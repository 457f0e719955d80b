"""Binary cancer classifier built on a torchvision ResNet."""
from __future__ import annotations

from pathlib import Path

import torch
from torchvision import models

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)


class CancerNet(torch.nn.Module):
    """ResNet-18 with a single sigmoid output.

    Takes the service's ``(N, H, W, 3)`` tensors of raw ``[0, 255]`` pixel values
    and applies ImageNet normalization itself, so the exported artifact is
    self-contained.
    """

    def __init__(self, pretrained: bool = True, checkpoint: Path | None = None) -> None:
        super().__init__()
        weights = models.ResNet18_Weights.IMAGENET1K_V1 if pretrained else None
        self.backbone = models.resnet18(weights=weights)
        self.backbone.fc = torch.nn.Linear(self.backbone.fc.in_features, 1)
        self.register_buffer("mean", torch.tensor(IMAGENET_MEAN).view(1, 3, 1, 1))
        self.register_buffer("std", torch.tensor(IMAGENET_STD).view(1, 3, 1, 1))

        if checkpoint and checkpoint.exists():
            state = torch.load(checkpoint, map_location="cpu")
            self.backbone.load_state_dict(state.get("state_dict", state), strict=False)

        self.eval()

    def forward(self, pixels: torch.Tensor) -> torch.Tensor:
        x = pixels.permute(0, 3, 1, 2) / 255.0
        x = (x - self.mean) / self.std
        return torch.sigmoid(self.backbone(x))
