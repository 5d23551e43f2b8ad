"""Local file discovery and upload rule matching."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from ..config.settings import UploadRule
from ..errors import LocalIOError
from ..utils.file_utils import FileHelper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFile:
    """A regular file found in the backup directory."""
    path: Path
    name: str
    size: int


@dataclass(frozen=True)
class MatchedFile:
    """A local file together with the upload rule that selected it."""
    file: LocalFile
    rule: UploadRule

    @property
    def key(self) -> str:
        return FileHelper.build_remote_key(self.rule.cloud_dir, self.file.name)


def match_rule(file_name: str, rules: Sequence[UploadRule]) -> Optional[UploadRule]:
    """Return the first rule whose prefix starts ``file_name``, or None."""
    for rule in rules:
        if rule.matches(file_name):
            return rule
    return None


class FileScanner:
    """Scan one directory (non-recursively) and match its files to upload rules."""

    def __init__(self, directory: Path, rules: Sequence[UploadRule]):
        """Initialize file scanner.

        Args:
            directory: Directory holding the files to back up
            rules: Upload rules in configuration order
        """
        self.directory = Path(directory)
        self.rules = list(rules)
        self.undecodable_names = 0
        self.unmatched_files = 0

    def discover(self) -> List[LocalFile]:
        """List regular files in the directory, sorted by name.

        Subdirectories and other non-regular entries are ignored. Entries whose
        name is not valid text are logged and skipped.

        Raises:
            LocalIOError: If the directory or an entry cannot be read
        """
        files = []
        try:
            with os.scandir(self.directory) as entries:
                for entry in entries:
                    if not entry.is_file():
                        continue

                    name = FileHelper.decode_file_name(entry.name)
                    if name is None:
                        self.undecodable_names += 1
                        logger.warning(f"Skipping file with undecodable name: {entry.name!r}")
                        continue

                    path = Path(entry.path)
                    try:
                        size = entry.stat().st_size
                    except OSError as e:
                        raise LocalIOError(path, e.strerror or str(e)) from e

                    files.append(LocalFile(path=path, name=name, size=size))
        except OSError as e:
            raise LocalIOError(self.directory, e.strerror or str(e)) from e

        files.sort(key=lambda f: f.name)
        return files

    def scan(self) -> Iterator[MatchedFile]:
        """Yield the discovered files that match an upload rule.

        Files without a matching rule are dropped here, before any hashing or
        network call is made for them.
        """
        for local_file in self.discover():
            rule = match_rule(local_file.name, self.rules)
            if rule is None:
                self.unmatched_files += 1
                logger.debug(f"No upload rule for {local_file.name}, ignoring")
                continue
            yield MatchedFile(file=local_file, rule=rule)
