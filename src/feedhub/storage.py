"""
Pure storage layer for file operations.

This module provides low-level file operations without any business logic.
Every write lands in a sibling temp file first and is promoted with
``os.replace`` so readers never see a half-written file.
"""

import json
import logging
import os
import shutil
from typing import Any, Dict, List, Optional


class Storage:
    """Pure file operations without business logic."""

    def __init__(self, base_dir: str = "./data"):
        """Initialize with base directory."""
        self.base_dir = base_dir
        self.logger = logging.getLogger(__name__)

    def ensure_directory(self, path: str) -> None:
        """Create directory if it doesn't exist."""
        os.makedirs(path, exist_ok=True)

    def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        return os.path.exists(path)

    def file_size(self, path: str) -> int:
        """Size of a file in bytes, 0 if missing."""
        try:
            return os.path.getsize(path)
        except OSError:
            return 0

    def directory_size(self, path: str) -> int:
        """Total size of all regular files below a directory."""
        total = 0
        for root, _dirs, files in os.walk(path):
            for name in files:
                total += self.file_size(os.path.join(root, name))
        return total

    def read_json(self, path: str) -> Optional[Dict[str, Any]]:
        """Read JSON file, return None if file doesn't exist or invalid JSON."""
        if not os.path.exists(path):
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
                return data if isinstance(data, dict) else None
        except (json.JSONDecodeError, FileNotFoundError, IOError) as e:
            self.logger.error("Could not read %s: %s", path, e)
            return None

    def write_json(self, path: str, data: Dict[str, Any]) -> bool:
        """Write data to JSON file atomically, return success status."""
        try:
            payload = json.dumps(data, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self.logger.error("Could not serialize %s: %s", path, e)
            return False
        return self._write_atomic(path, payload)

    def read_text_lines(self, path: str) -> Optional[List[str]]:
        """Read lines from text file, return None if error."""
        if not os.path.exists(path):
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                return [line.strip() for line in f.readlines()]
        except (FileNotFoundError, IOError):
            return None

    def write_text_lines(self, path: str, lines: List[str]) -> bool:
        """Write lines to text file (for JSONL), return success status."""
        return self._write_atomic(path, "".join(line + "\n" for line in lines))

    def remove_file(self, path: str) -> bool:
        """Remove a file; a missing file counts as removed."""
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            self.logger.error("Could not remove %s: %s", path, e)
            return False

    def reset_directory(self, path: str) -> None:
        """Delete a directory with all contents and recreate it empty."""
        if os.path.exists(path):
            shutil.rmtree(path)
        self.ensure_directory(path)

    def join_path(self, *parts: str) -> str:
        """Join path parts."""
        return os.path.join(*parts)

    def _write_atomic(self, path: str, text: str) -> bool:
        temp_path = path + ".tmp"
        try:
            directory = os.path.dirname(path)
            if directory:
                self.ensure_directory(directory)

            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(temp_path, path)
            return True
        except OSError as e:
            self.logger.error("Could not write %s: %s", path, e)
            self.remove_file(temp_path)
            return False
