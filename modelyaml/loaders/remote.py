"""Fetch model definitions over HTTP."""

import logging

import httpx

from modelyaml.config import FETCH_TIMEOUT
from modelyaml.definitions import ModelDefinition
from modelyaml.errors import DefinitionLoadError
from modelyaml.loaders.files import build_definition, parse_document

logger = logging.getLogger(__name__)


def fetch_document(url: str, timeout: float = FETCH_TIMEOUT) -> str:
    """Fetch the raw text of a definition document."""
    try:
        response = httpx.get(url, timeout=timeout, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise DefinitionLoadError(url, str(e)) from e
    logger.info("Fetched definition document %s", url)
    return response.text


def fetch_definition(url: str, timeout: float = FETCH_TIMEOUT) -> ModelDefinition:
    """Fetch and parse one definition from *url*."""
    text = fetch_document(url, timeout=timeout)
    return build_definition(parse_document(text, url), url)


def fetch_definitions(urls: list[str], timeout: float = FETCH_TIMEOUT) -> list[ModelDefinition]:
    """Fetch several definitions, failing on the first error."""
    results = []
    total = len(urls)
    for i, url in enumerate(urls, 1):
        logger.info("Fetching definition %d/%d: %s", i, total, url)
        results.append(fetch_definition(url, timeout=timeout))
    return results
