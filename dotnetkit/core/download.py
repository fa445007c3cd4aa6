"""
Single-shot file download for DotnetKit.

The installer script is fetched once per installation:
- HTTP/HTTPS via requests with TLS verification and redirects
- Streaming write to a temporary file, then rename over the destination
- No retries: a failure is reported once and the operation stops
- No timeout unless the caller asks for one
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional, Union

import requests
from requests.exceptions import RequestException

from dotnetkit.core.exceptions import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 8192


def fetch_file(
    url: str,
    destination: Union[str, Path],
    timeout: Optional[float] = None,
) -> Path:
    """
    Download url to destination, replacing any existing file.

    Args:
        url: URL to download from
        destination: Local path to save file
        timeout: Request timeout in seconds (None waits as long as the
            transport allows)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the request fails or the server returns an error status
        ValueError: If URL or destination is empty

    Example:
        >>> fetch_file("https://dot.net/v1/dotnet-install.sh", Path(".dotnet/dotnet-install.sh"))
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not destination:
        raise ValueError("Destination path cannot be empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Downloading {url}")

    # Temp file in the same directory so the final rename stays on one filesystem
    temp_file = tempfile.NamedTemporaryFile(
        dir=destination.parent,
        prefix=f".{destination.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(temp_file.name)

    try:
        with temp_file:
            with requests.get(
                url, stream=True, timeout=timeout, allow_redirects=True
            ) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        temp_file.write(chunk)

        temp_path.replace(destination)

    except RequestException as e:
        temp_path.unlink(missing_ok=True)
        raise DownloadError(url, str(e)) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    logger.debug(f"Download complete: {destination}")
    return destination
