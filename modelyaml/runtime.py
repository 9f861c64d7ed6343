"""Describe the executing host as RuntimeCapabilities."""

import logging
import platform

import psutil

from modelyaml.config import DEFAULT_SUPPORTED_FORMATS, PREFERRED_PARAM_SIZE
from modelyaml.definitions import RuntimeCapabilities

logger = logging.getLogger(__name__)

# MLX loads safetensors weights; it only runs on Apple silicon
MLX_FORMAT = "safetensors"


def is_apple_silicon() -> bool:
    return platform.system() == "Darwin" and platform.machine() == "arm64"


def detect_supported_formats(configured: tuple[str, ...] = DEFAULT_SUPPORTED_FORMATS) -> tuple[str, ...]:
    """Return the configured formats, adding the MLX format on Apple silicon."""
    formats = list(configured)
    if is_apple_silicon() and MLX_FORMAT not in formats:
        formats.append(MLX_FORMAT)
    return tuple(formats)


def detect_runtime_capabilities(
    *,
    supported_formats: tuple[str, ...] | None = None,
    available_memory_bytes: int | None = None,
    preferred_param_size: str | None = None,
) -> RuntimeCapabilities:
    """Build capabilities for this machine; explicit arguments win over detection."""
    if supported_formats is None:
        supported_formats = detect_supported_formats()
    if available_memory_bytes is None:
        available_memory_bytes = int(psutil.virtual_memory().available)
    if preferred_param_size is None:
        preferred_param_size = PREFERRED_PARAM_SIZE

    caps = RuntimeCapabilities(
        supported_formats=supported_formats,
        available_memory_bytes=available_memory_bytes,
        preferred_param_size=preferred_param_size,
    )
    logger.info(
        "Runtime: formats=%s memory=%.1f GB preferred=%s",
        ",".join(caps.supported_formats),
        caps.available_memory_bytes / (1024**3),
        caps.preferred_param_size or "-",
    )
    return caps
