"""Concurrent generation of size-tier variants from one source image."""

import asyncio
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Mapping, Optional

from .exceptions import ConfigurationError, ImageProcessingError, ImagingError
from .logging_config import get_logger
from .models import DEFAULT_SIZE_PRESETS, ProcessOptions, ProcessedVariant, SizePreset
from .processing import render_image, resolve_output_format

logger = get_logger("variants")

MAX_VARIANT_WORKERS = 4


def _resolve_presets(sizes: Optional[Mapping[str, SizePreset]]) -> Dict[str, SizePreset]:
    if sizes is None:
        return dict(DEFAULT_SIZE_PRESETS)
    if not sizes:
        raise ConfigurationError("At least one size preset is required")
    return {
        name: preset if isinstance(preset, SizePreset) else SizePreset(**preset)
        for name, preset in sizes.items()
    }


def render_variant(
    buffer: bytes, name: str, preset: SizePreset, format: str = "jpeg", fit: str = "cover"
) -> ProcessedVariant:
    """Render one preset: auto-orient, resize without enlarging, encode."""
    data, format_name, width, height = render_image(
        buffer,
        ProcessOptions(
            width=preset.width,
            height=preset.height,
            quality=preset.quality,
            format=format,
            fit=fit,
        ),
    )
    logger.debug(f"[{name}] Rendered {width}x{height} {format_name} ({len(data)} bytes)")
    return ProcessedVariant(
        name=name, data=data, format=format_name, width=width, height=height
    )


def _raise_batch_failure(name: str, exc: BaseException) -> None:
    # Cancellation and other non-Exception errors propagate unchanged
    if isinstance(exc, ImagingError) or not isinstance(exc, Exception):
        raise exc
    raise ImageProcessingError(f"Failed to render variant '{name}': {exc}") from exc


def generate_multiple_sizes(
    buffer: bytes,
    sizes: Optional[Mapping[str, SizePreset]] = None,
    *,
    format: str = "jpeg",
    fit: str = "cover",
    max_workers: Optional[int] = None,
) -> Dict[str, ProcessedVariant]:
    """
    Generate one variant per size preset using a thread pool.

    Args:
        buffer: Original image bytes
        sizes: Preset name -> SizePreset. Defaults to thumbnail, medium and
            large; an explicit mapping replaces the defaults.
        format: Output format for every variant
        fit: Resize strategy for every variant
        max_workers: Thread pool size (defaults to one per preset, capped)

    Returns:
        Preset name -> ProcessedVariant, one entry per preset

    Raises:
        ImagingError: If any render fails; no partial result is returned
    """
    presets = _resolve_presets(sizes)
    resolve_output_format(format)

    workers = max_workers or min(MAX_VARIANT_WORKERS, len(presets))
    variants: Dict[str, ProcessedVariant] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_name = {
            executor.submit(render_variant, buffer, name, preset, format, fit): name
            for name, preset in presets.items()
        }

        for future in as_completed(future_to_name):
            name = future_to_name[future]
            try:
                variants[name] = future.result()
            except Exception as e:
                for pending in future_to_name:
                    pending.cancel()
                logger.error(f"Error generating multiple sizes: variant '{name}' failed: {e}")
                _raise_batch_failure(name, e)

    logger.info(f"Generated {len(variants)} variants: {', '.join(sorted(variants))}")
    return variants


async def generate_multiple_sizes_async(
    buffer: bytes,
    sizes: Optional[Mapping[str, SizePreset]] = None,
    *,
    format: str = "jpeg",
    fit: str = "cover",
) -> Dict[str, ProcessedVariant]:
    """
    Asyncio counterpart of ``generate_multiple_sizes``.

    Renders run in worker threads and are awaited together; the first
    failure fails the whole call.
    """
    presets = _resolve_presets(sizes)
    resolve_output_format(format)

    names = list(presets)
    tasks = [
        asyncio.to_thread(render_variant, buffer, name, presets[name], format, fit)
        for name in names
    ]

    results = await asyncio.gather(*tasks, return_exceptions=True)

    variants: Dict[str, ProcessedVariant] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            logger.error(f"Error generating multiple sizes: variant '{name}' failed: {result}")
            _raise_batch_failure(name, result)
        variants[name] = result

    logger.info(f"Generated {len(variants)} variants: {', '.join(sorted(variants))}")
    return variants
