"""WordPress download URL resolution.

Used by the provisioning flow that installs core before a snapshot is pulled
into a fresh environment. Only ``latest`` needs the network; every other
version maps to a fixed URL template. Nothing is cached between calls.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)

from wpsnapshots import constants
from wpsnapshots._logging import get_logger
from wpsnapshots.exceptions import DownloadUrlLookupError

logger = get_logger(__name__)


def versioned_download_url(version: str, locale: str = constants.DEFAULT_LOCALE) -> str:
    """Deterministic tarball URL for a concrete version.

    en_US lives on wordpress.org; other locales on ``{lang}.wordpress.org``.
    """
    if locale == constants.DEFAULT_LOCALE:
        return f"https://wordpress.org/wordpress-{version}.tar.gz"
    return f"https://{locale[:2]}.wordpress.org/wordpress-{version}-{locale}.tar.gz"


async def get_download_url(
    version: str = "latest",
    locale: str = constants.DEFAULT_LOCALE,
    *,
    client: httpx.AsyncClient | None = None,
    version_check_url: str = constants.VERSION_CHECK_URL,
    timeout: float = constants.DEFAULT_HTTP_TIMEOUT_SECONDS,
) -> str:
    """Resolve the download URL for a WordPress version and locale.

    Args:
        version: "nightly", "latest" or a concrete version such as "6.4.2"
        locale: WordPress locale (e.g. "en_US", "de_DE")
        client: Optional shared httpx client (a short-lived one is used otherwise)
        version_check_url: Version-check endpoint for "latest"
        timeout: HTTP timeout in seconds

    Raises:
        DownloadUrlLookupError: "latest" could not be resolved (transport error,
            non-200 status, or a response without a download offer)
    """
    if version == "nightly":
        return constants.NIGHTLY_DOWNLOAD_URL

    if version != "latest":
        return versioned_download_url(version, locale)

    if client is None:
        async with httpx.AsyncClient(timeout=timeout) as owned_client:
            return await _lookup_latest(owned_client, version_check_url, locale)
    return await _lookup_latest(client, version_check_url, locale)


async def _lookup_latest(client: httpx.AsyncClient, version_check_url: str, locale: str) -> str:
    context = {"url": version_check_url, "locale": locale}
    try:
        response = await client.get(
            version_check_url,
            params={"locale": locale},
            headers={"Accept": "application/json"},
        )
    except httpx.HTTPError as e:
        raise DownloadUrlLookupError(f"Version check failed: {e}", context=context) from e

    if response.status_code != httpx.codes.OK:
        raise DownloadUrlLookupError(
            f"Version check returned HTTP {response.status_code}",
            context={**context, "status_code": response.status_code},
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise DownloadUrlLookupError("Version check returned an unreadable payload", context=context) from e

    offers = payload.get("offers") if isinstance(payload, dict) else None
    offer = offers[0] if isinstance(offers, list) and offers else None
    download = offer.get("download") if isinstance(offer, dict) else None
    if not download or not isinstance(download, str):
        raise DownloadUrlLookupError("Version check response has no download offer", context=context)

    url = download.replace(".zip", ".tar.gz")
    logger.debug("Resolved latest WordPress", extra={"download_url": url, "locale": locale})
    return url


async def get_download_url_with_retry(
    version: str = "latest",
    locale: str = constants.DEFAULT_LOCALE,
    *,
    attempts: int = 3,
    client: httpx.AsyncClient | None = None,
    version_check_url: str = constants.VERSION_CHECK_URL,
    timeout: float = constants.DEFAULT_HTTP_TIMEOUT_SECONDS,
) -> str:
    """get_download_url with exponential backoff on lookup failures.

    Raises the last DownloadUrlLookupError once attempts are exhausted.
    """
    async for attempt in AsyncRetrying(
        retry=retry_if_exception_type(DownloadUrlLookupError),
        stop=stop_after_attempt(attempts),
        wait=wait_random_exponential(multiplier=0.5, max=8),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            return await get_download_url(
                version,
                locale,
                client=client,
                version_check_url=version_check_url,
                timeout=timeout,
            )
    raise AssertionError("unreachable")  # pragma: no cover
