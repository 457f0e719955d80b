"""Export the cancer classifier to TorchScript for deployment."""
from __future__ import annotations

import argparse
from pathlib import Path

import torch

from cancerscan.services.preprocess import IMAGE_SIZE
from cancerscan.services.vision import CancerNet


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Trace CancerNet into a TorchScript artifact")
    parser.add_argument("--checkpoint", default=None, help="Optional fine-tuned state dict to load")
    parser.add_argument("--output", default="models/cancerscan_resnet18.ts", help="Where to write the artifact")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    checkpoint = Path(args.checkpoint) if args.checkpoint else None
    model = CancerNet(pretrained=checkpoint is None, checkpoint=checkpoint)
    dummy_input = torch.rand(1, IMAGE_SIZE, IMAGE_SIZE, 3) * 255.0
    traced = torch.jit.trace(model, dummy_input)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    traced.save(str(output))


if __name__ == "__main__":
    main()
