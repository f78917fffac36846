"""
Input/Output Manager (JSON)
Handles saving and loading Investigation records to .json files.
The image itself is referenced by path and never embedded.
"""
import json
import logging
import os
import tempfile
from importlib.metadata import version, PackageNotFoundError

from albedoanalysis.model.state import Investigation

logger = logging.getLogger(__name__)

try:
    APP_VERSION = version("albedoanalysis")
except PackageNotFoundError:
    APP_VERSION = "0.0.0-dev"

FILE_FORMAT = "albedo-investigation"


class IOManager:

    @staticmethod
    def save_investigation(investigation: Investigation, filepath: str) -> None:
        logger.info(f"Saving investigation to: {filepath}")
        payload = {
            "format": FILE_FORMAT,
            "version": APP_VERSION,
            "investigation": investigation.to_dict(),
        }
        directory = os.path.dirname(os.path.abspath(filepath))
        # Write to a sibling temp file first so a failed dump never truncates the target
        fd, tmp_path = tempfile.mkstemp(suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, filepath)
        except Exception as e:
            logger.exception(f"Failed to save investigation: {e}")
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.info(
            f"Investigation saved ({len(investigation.reference_fields)} reference fields, "
            f"{len(investigation.measurements)} measurements)."
        )

    @staticmethod
    def load_investigation(filepath: str) -> Investigation:
        logger.info(f"Loading investigation from: {filepath}")
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.exception(f"Failed to read investigation file: {e}")
            raise

        # Bare records (without the envelope) are accepted as well
        if isinstance(payload, dict) and payload.get("format") == FILE_FORMAT:
            file_version = payload.get("version", "unknown")
            if file_version != APP_VERSION:
                logger.debug(f"File version {file_version} differs from app version {APP_VERSION}.")
            data = payload.get("investigation")
        else:
            data = payload

        if not isinstance(data, dict):
            msg = f"File '{filepath}' does not contain an investigation record."
            logger.error(msg)
            raise ValueError(msg)

        try:
            investigation = Investigation.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.exception(f"Malformed investigation record: {e}")
            raise ValueError(f"Malformed investigation record in '{filepath}': {e}") from e

        logger.info(f"Loaded investigation '{investigation.name}'.")
        return investigation
