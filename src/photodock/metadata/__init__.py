"""Camera metadata extraction and GPS stripping."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Protocol

from loguru import logger

from photodock.config import EXIFTOOL_PATH
from photodock.models import ExifInfo


class MetadataExtractor(Protocol):
    """Common interface of the extraction strategies."""

    name: str

    def extract(self, path: str | Path) -> tuple[ExifInfo, datetime | None]:
        """Return (metadata, capture time). Never raises; failures give an empty record."""
        ...


def select_extractor(exiftool: str | None = EXIFTOOL_PATH) -> MetadataExtractor:
    """Pick the exiftool strategy when the binary is available, else the built-in decoder."""
    from photodock.metadata.exiftool import ExifToolExtractor
    from photodock.metadata.tiff import BuiltinExtractor

    executable = shutil.which(exiftool) if exiftool else None
    if executable:
        logger.info("Using exiftool at {} for metadata extraction", executable)
        return ExifToolExtractor(executable=executable)
    logger.info("exiftool not found, using the built-in EXIF decoder")
    return BuiltinExtractor()
