"""
AWS RDS Trust Bundle Cache

Downloads the AWS RDS global certificate bundle and keeps it on disk under
.aws-certs/ in the working directory. A cached bundle is reused while it is
younger than 30 days (judged by file modification time) and still contains
a PEM certificate block; otherwise it is fetched again.

The resolved path is memoized on the cache instance, so a process that owns
one TrustBundleCache downloads at most once. There is no locking across
processes or concurrent downloads.
"""

import asyncio
import logging
import os
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests

from db_config import settings
from db_config.errors import CertificateAcquisitionError, CertificateCorruptionError

logger = logging.getLogger(__name__)

PEM_BEGIN_MARKER = b"-----BEGIN CERTIFICATE-----"
PEM_END_MARKER = b"-----END CERTIFICATE-----"
SECONDS_PER_DAY = 60 * 60 * 24
DOWNLOAD_CHUNK_SIZE = 8192


def is_valid_bundle(contents: bytes) -> bool:
    """Structural check: both certificate delimiters present"""
    return PEM_BEGIN_MARKER in contents and PEM_END_MARKER in contents


class FileStorage:
    """Thin wrapper over the file operations the cache needs"""

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def makedirs(self, path: str):
        os.makedirs(path, exist_ok=True)

    def mtime(self, path: str) -> float:
        return os.stat(path).st_mtime

    def size(self, path: str) -> int:
        return os.stat(path).st_size

    def read(self, path: str) -> bytes:
        with open(path, "rb") as fh:
            return fh.read()

    def open_write(self, path: str):
        return open(path, "wb")

    def remove(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


@dataclass
class TrustBundleStatus:
    """Diagnostic snapshot of the on-disk bundle"""
    exists: bool
    path: str
    age_days: Optional[float] = None
    days_until_expiry: Optional[float] = None
    expired: Optional[bool] = None
    size_bytes: Optional[int] = None
    last_modified: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TrustBundleCache:
    """
    On-disk cache for the RDS certificate bundle.

    ensure() never raises: any failure is logged and reported as None so the
    caller can fall back to a weaker TLS mode.
    """

    def __init__(self,
                 cache_dir: Optional[str] = None,
                 storage: Optional[FileStorage] = None,
                 session: Optional[requests.Session] = None,
                 now: Optional[Callable[[], float]] = None,
                 url: str = settings.RDS_BUNDLE_URL,
                 timeout: float = settings.CERT_DOWNLOAD_TIMEOUT,
                 max_age_days: int = settings.CERT_MAX_AGE_DAYS):
        self.cache_dir = cache_dir or os.path.join(os.getcwd(), settings.RDS_CERT_DIR_NAME)
        self.file_path = os.path.join(self.cache_dir, settings.RDS_CERT_FILE_NAME)
        self.storage = storage or FileStorage()
        self.session = session or requests.Session()
        self.now = now or time.time
        self.url = url
        self.timeout = timeout
        self.max_age_days = max_age_days
        self._resolved_path: Optional[str] = None

    @property
    def resolved_path(self) -> Optional[str]:
        return self._resolved_path

    async def ensure(self) -> Optional[str]:
        """Return the path of a usable bundle, downloading it if needed"""
        if self._resolved_path:
            return self._resolved_path

        try:
            path = await asyncio.to_thread(self._ensure_on_disk)
        except Exception as e:
            logger.warning(f"Could not acquire AWS RDS certificate bundle: {e}")
            return None

        self._resolved_path = path
        return path

    def read_bundle(self) -> bytes:
        """Read the PEM bytes of the resolved bundle"""
        path = self._resolved_path or self.file_path
        try:
            return self.storage.read(path)
        except OSError as e:
            raise CertificateAcquisitionError(f"Could not read certificate bundle {path}: {e}") from e

    def status(self) -> TrustBundleStatus:
        """Report on the cached file without downloading anything"""
        if not self.storage.exists(self.file_path):
            return TrustBundleStatus(exists=False, path=self.file_path)

        mtime = self.storage.mtime(self.file_path)
        age_days = self._age_days(mtime)
        return TrustBundleStatus(
            exists=True,
            path=self.file_path,
            age_days=round(age_days, 2),
            days_until_expiry=round(max(0.0, self.max_age_days - age_days), 2),
            expired=age_days >= self.max_age_days,
            size_bytes=self.storage.size(self.file_path),
            last_modified=datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat(),
        )

    def _age_days(self, mtime: float) -> float:
        return (self.now() - mtime) / SECONDS_PER_DAY

    def _ensure_on_disk(self) -> str:
        try:
            self.storage.makedirs(self.cache_dir)
        except OSError as e:
            raise CertificateAcquisitionError(f"Could not create {self.cache_dir}: {e}") from e

        if self.storage.exists(self.file_path):
            cached = self._load_cached()
            if cached:
                return cached

        return self._download()

    def _load_cached(self) -> Optional[str]:
        age_days = self._age_days(self.storage.mtime(self.file_path))
        if age_days >= self.max_age_days:
            logger.info(f"AWS RDS certificate bundle is older than {self.max_age_days} days, re-downloading...")
            return None

        try:
            self._validate(self.storage.read(self.file_path))
        except CertificateCorruptionError as e:
            logger.warning(f"{e}, re-downloading...")
            return None

        logger.info("Using cached AWS RDS certificate bundle")
        return self.file_path

    def _validate(self, contents: bytes):
        if not is_valid_bundle(contents):
            raise CertificateCorruptionError(f"Cached certificate bundle {self.file_path} is corrupted")

    def _download(self) -> str:
        logger.info("Downloading AWS RDS certificate bundle...")
        try:
            response = self.session.get(self.url, stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise CertificateAcquisitionError(f"Failed to download certificate: {e}") from e

        try:
            if response.status_code != 200:
                raise CertificateAcquisitionError(
                    f"Failed to download certificate: HTTP {response.status_code}"
                )
            self._write_bundle(response)
        finally:
            response.close()

        logger.info("AWS RDS certificate bundle downloaded successfully")
        return self.file_path

    def _write_bundle(self, response):
        try:
            with self.storage.open_write(self.file_path) as fh:
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
            self._validate(self.storage.read(self.file_path))
        except Exception as e:
            self.storage.remove(self.file_path)
            raise CertificateAcquisitionError(f"Failed to download certificate: {e}") from e
