"""
Dataset Fetcher

Acquires raw proposal rows from a URL or a local file.

PRINCIPLES:
===========
1. Failed loads are first-class results, never exceptions
2. Rows are returned as plain mappings; no normalization here
3. Spreadsheet cells keep their native types (dates stay dates)
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Tuple
import asyncio
import csv
import io
import zipfile

import httpx
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from backend.contracts.base import Error, ErrorCode
from .contracts import LoadResult, LoadStatus


SUPPORTED_SUFFIXES: Tuple[str, ...] = (".xlsx", ".xlsm", ".csv")


@dataclass
class FetcherConfig:
    """Configuration for dataset acquisition."""
    timeout: float = 30.0
    user_agent: str = "TimeArc/1.0"
    default_dataset_url: Optional[str] = None


class UnsupportedFormat(ValueError):
    """Raised by the row readers for an unknown file suffix."""


def read_rows(payload: bytes, name: str) -> List[Dict[str, Any]]:
    """
    Parse file bytes into row mappings keyed by the header row.

    The format is chosen from the suffix of `name`.
    """
    suffix = PurePosixPath(name.lower()).suffix
    if suffix in (".xlsx", ".xlsm"):
        return _read_workbook(payload)
    if suffix == ".csv":
        return _read_csv(payload)
    raise UnsupportedFormat(f"Unsupported file type '{suffix or name}': expected .xlsx or .csv")


def _read_workbook(payload: bytes) -> List[Dict[str, Any]]:
    workbook = load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        columns = [str(c).strip() if c is not None else "" for c in header]

        result = []
        for values in rows:
            if values is None or all(v is None or v == "" for v in values):
                continue
            record = {}
            for column, value in zip(columns, values):
                if column:
                    record[column] = "" if value is None else value
            result.append(record)
        return result
    finally:
        workbook.close()


def _read_csv(payload: bytes) -> List[Dict[str, Any]]:
    text = payload.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    return [
        {k.strip(): (v or "") for k, v in row.items() if k}
        for row in reader
        if any((v or "").strip() for v in row.values() if isinstance(v, str))
    ]


class DatasetFetcher:
    """
    Fetches and parses proposal datasets.

    GUARANTEES:
    ===========
    1. Every call returns a LoadResult
    2. Failures carry an Error with the LOAD_FAILURE code
    3. Nothing here touches engine state
    """

    def __init__(
        self,
        config: Optional[FetcherConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self._config = config or FetcherConfig()
        self._transport = transport

    @property
    def config(self) -> FetcherConfig:
        return self._config

    async def fetch(self, url: Optional[str] = None) -> LoadResult:
        """Download a dataset and parse it by the URL path's suffix."""
        url = url or self._config.default_dataset_url
        if not url:
            return self._failure("", LoadStatus.NETWORK_ERROR, "No dataset URL configured")

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(
                    url,
                    headers={'User-Agent': self._config.user_agent},
                    follow_redirects=True
                )
        except httpx.TimeoutException:
            return self._failure(url, LoadStatus.TIMEOUT, f"Timed out after {self._config.timeout}s")
        except httpx.HTTPError as e:
            return self._failure(url, LoadStatus.NETWORK_ERROR, f"{type(e).__name__}: {e}")

        if response.status_code != 200:
            return self._failure(url, LoadStatus.HTTP_ERROR, f"HTTP {response.status_code}")

        return self.parse(response.content, httpx.URL(url).path, source=url)

    async def read_file(self, path: Path) -> LoadResult:
        """Read a user-selected file without blocking the event loop."""
        path = Path(path)
        try:
            payload = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            return self._failure(str(path), LoadStatus.READ_ERROR, f"Cannot read file: {e}")
        return self.parse(payload, path.name, source=str(path))

    def parse(self, payload: bytes, name: str, source: Optional[str] = None) -> LoadResult:
        """Parse already-acquired bytes."""
        source = source or name
        try:
            rows = read_rows(payload, name)
        except UnsupportedFormat as e:
            return self._failure(source, LoadStatus.UNSUPPORTED_FORMAT, str(e))
        except (InvalidFileException, zipfile.BadZipFile, UnicodeDecodeError, csv.Error, KeyError, ValueError) as e:
            return self._failure(source, LoadStatus.PARSE_ERROR, f"{type(e).__name__}: {e}")

        return LoadResult(source=source, status=LoadStatus.SUCCESS, rows=tuple(rows))

    @staticmethod
    def _failure(source: str, status: LoadStatus, message: str) -> LoadResult:
        return LoadResult(
            source=source,
            status=status,
            error=Error.create(ErrorCode.LOAD_FAILURE, message, source=source, status=status.value),
        )
