#!/usr/bin/env python3
"""
Optimize a single stored image from the command line.

Runs the same pipeline as POST /optimize/ without going through HTTP.
Handy for backfills and for checking what an image would turn into.

Usage:
    python scripts/optimize_object.py s3://bucket/path/to/img.jpg
    python scripts/optimize_object.py s3://bucket/img.png --dry-run --output img.webp

Requires:
    - .env file (or environment) with AWS credentials and AWS_BUCKET_NAME
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from src.api.dependencies import build_object_store, build_optimizer  # noqa: E402
from src.config.settings import get_settings  # noqa: E402
from src.core.optimization.errors import OptimizationError  # noqa: E402
from src.core.optimization.transcode import TranscodeEngine  # noqa: E402


async def run(s3_url: str, dry_run: bool, output: str | None) -> bool:
    settings = get_settings()

    missing = [
        field for field in settings.validate_required_fields()
        if field != "API_TOKEN"
    ]
    if missing:
        print(f"ERROR: missing configuration: {', '.join(missing)}")
        return False

    optimizer = build_optimizer(settings, build_object_store(settings), TranscodeEngine())

    try:
        if dry_run:
            destination, image = await optimizer.preview(s3_url)
            print(f"Would write {image.size} bytes to {destination}")
            print(f"Public URL would be: {optimizer.public_url_for(destination)}")
            if output:
                Path(output).write_bytes(image.data)
                print(f"Wrote preview to {output}")
            return True

        result = await optimizer.optimize(s3_url)

    except OptimizationError as e:
        stage = e.stage.value if e.stage else "unknown"
        print(f"ERROR [{stage}]: {e.message}")
        return False

    print("=== Optimized ===")
    print(f"Source:    {result.source}")
    print(f"Written:   {result.destination}")
    print(f"Size:      {result.original_size} -> {result.optimized_size} bytes")
    print(f"URL:       {result.public_url}")
    return True


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Optimize one image stored in S3')
    parser.add_argument('s3_url', help='s3://bucket/key or https S3 URL of the image')
    parser.add_argument('--dry-run', action='store_true', help='Transcode only, don\'t delete or upload')
    parser.add_argument('--output', help='With --dry-run, save the optimized image to this path')
    args = parser.parse_args()

    if args.output and not args.dry_run:
        print("ERROR: --output only works with --dry-run")
        sys.exit(1)

    success = asyncio.run(run(args.s3_url, args.dry_run, args.output))

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
