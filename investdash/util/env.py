from __future__ import annotations

import logging
import os
from typing import MutableMapping, Optional

import certifi

logger = logging.getLogger(__name__)


def fix_ssl_env(env: Optional[MutableMapping[str, str]] = None) -> None:
    """Repair SSL certificate env vars that point at missing paths.

    A stale SSL_CERT_FILE is replaced by the certifi bundle and a stale
    SSL_CERT_DIR is dropped, so market data requests do not fail on
    certificate loading.
    """
    env = os.environ if env is None else env
    cert_file = env.get("SSL_CERT_FILE")
    if cert_file and not os.path.exists(cert_file):
        env["SSL_CERT_FILE"] = certifi.where()
        logger.warning(f"SSL_CERT_FILE {cert_file!r} not found, using certifi bundle")
    cert_dir = env.get("SSL_CERT_DIR")
    if cert_dir and not os.path.isdir(cert_dir):
        del env["SSL_CERT_DIR"]
        logger.warning(f"SSL_CERT_DIR {cert_dir!r} not found, unset")
