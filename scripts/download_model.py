#!/usr/bin/env python3
"""
Legacy Letters dictation model downloader.

Fetches the faster-whisper weights ahead of time so the first dictation
in the browser does not wait on a download. Uses the same loader and
settings as the API process.
"""

import argparse
import asyncio
import logging
import sys

from legacy_letters.core.config import get_settings
from legacy_letters.core.models import ModelStatus
from legacy_letters.services.transcription.whisper import WhisperEngine

MODELS = {
    "tiny.en": "39 MB, English only (default)",
    "tiny": "39 MB, multilingual",
    "base.en": "142 MB, English only",
    "base": "142 MB, multilingual",
    "small.en": "466 MB, English only",
    "small": "466 MB, multilingual",
}


def print_models(default: str) -> None:
    """Print the models suited to on-device dictation."""
    print("\nDictation models:")
    print("-" * 50)
    for name, info in MODELS.items():
        print(f"  {name:10} - {info}")
    print("-" * 50)
    print(f"\nConfigured model: {default}\n")


async def warm_up(model_name: str, device: str, compute_type: str) -> bool:
    """Load the model once through WhisperEngine, printing progress."""

    def on_progress(progress: int) -> None:
        print(f"  {progress:3d}%")

    engine = WhisperEngine(
        model_size=model_name,
        device=device,
        compute_type=compute_type,
        on_progress=on_progress,
    )
    await engine.load_model()
    if engine.status != ModelStatus.ready:
        print(f"\n✗ {engine.error}")
        return False
    print(f"\n✓ {model_name} is cached and ready.\n")
    return True


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Download the Legacy Letters dictation model")
    parser.add_argument(
        "--model",
        default=settings.whisper_model,
        help=f"Model to download (default: {settings.whisper_model})",
    )
    parser.add_argument("--device", default=settings.whisper_device, choices=["cpu", "cuda"])
    parser.add_argument(
        "--compute-type",
        default=settings.whisper_compute_type,
        choices=["int8", "float16", "float32"],
    )
    parser.add_argument("--list", action="store_true", help="List models and exit")
    args = parser.parse_args()

    if args.list:
        print_models(settings.whisper_model)
        return

    logging.basicConfig(level=settings.log_level.upper())
    print(f"\nDownloading {args.model} ({args.device}, {args.compute_type})...")
    success = asyncio.run(warm_up(args.model, args.device, args.compute_type))
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
