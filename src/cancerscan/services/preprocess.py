"""Image preprocessing for the cancer classifier."""
from __future__ import annotations

import io

import torch
from PIL import Image
from torchvision.transforms import InterpolationMode
from torchvision.transforms import functional as F

IMAGE_SIZE = 224


def transform_image_bytes(image_bytes: bytes, size: int = IMAGE_SIZE) -> torch.Tensor:
    """Decode raw bytes into a ``(1, size, size, 3)`` float tensor of RGB pixel values.

    The image is bilinearly resized without antialiasing and keeps the decoded
    ``[0, 255]`` range; normalization is part of the exported model.
    """
    image = Image.open(io.BytesIO(image_bytes)).convert("RGB")
    tensor = F.pil_to_tensor(image).float()
    tensor = F.resize(
        tensor,
        [size, size],
        interpolation=InterpolationMode.BILINEAR,
        antialias=False,
    )
    return tensor.permute(1, 2, 0).unsqueeze(0).contiguous()
